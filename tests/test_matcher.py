"""
Tests for product name normalization, word similarity and product matching.
"""

from matcher import (
    MatchConfig, calculate_similarity, match_product_name, normalize_product_name,
    resolve_product, tokenize_product_name, words_similar,
)


class TestNormalizeProductName:

    def test_article_and_punctuation_removed(self):
        assert normalize_product_name("The Wings!!") == "wings"
        assert normalize_product_name("wings") == "wings"

    def test_empty_and_none(self):
        assert normalize_product_name("") == ""
        assert normalize_product_name(None) == ""

    def test_trailing_article_and_whitespace(self):
        assert normalize_product_name("  Pretzel   Bites, a ") == "pretzel bites"

    def test_only_one_leading_article_removed(self):
        assert normalize_product_name("The A Team") == "a team"

    def test_underscores_and_symbols_become_spaces(self):
        assert normalize_product_name("beer_cheese/dip (large)") == "beer cheese dip large"

    def test_tokenize_drops_single_characters(self):
        assert tokenize_product_name("Chicken & Waffles 2 pc") == ["chicken", "waffles", "pc"]


class TestWordsSimilar:

    def test_plurals(self):
        assert words_similar("wing", "wings")
        assert words_similar("tender", "tenders")
        assert words_similar("fries", "frie")

    def test_unrelated_words(self):
        assert not words_similar("chicken", "beef")

    def test_variation_table(self):
        variations = {"bbq": ["barbecue"]}
        assert words_similar("barbecue", "bbq", variations=variations)
        assert not words_similar("barbecue", "bbq", variations={})

    def test_substring_needs_long_words(self):
        assert words_similar("cheeseburger", "burger")
        assert not words_similar("tea", "steak")

    def test_substring_length_is_configurable(self):
        assert not words_similar("cheeseburger", "burger", min_substring_length=6)

    def test_trailing_s_false_positive_is_kept(self):
        # crude plural rule: "bus" and "bu" pair up
        assert words_similar("bus", "bu")


class TestCalculateSimilarity:

    def test_identical_names_score_100(self):
        assert calculate_similarity("The Chicken Tenders", "chicken tenders!") == 100

    def test_empty_names_score_zero(self):
        assert calculate_similarity("", "Chicken Tenders") == 0
        assert calculate_similarity("a", "Chicken Tenders") == 0

    def test_partial_word_overlap(self):
        # 1 matching pair of 2 words -> 40, plus 15 containment bonus
        assert calculate_similarity("Tender", "Chicken Tenders") == 55

    def test_pairs_are_not_deduplicated(self):
        # "wing" pairs with both "wings" and "wing" -> 2/2 * 80
        assert calculate_similarity("wing platter", "wings wing") == 80

    def test_score_capped_at_100(self):
        score = calculate_similarity("wing wing", "wings wing")
        assert score == 100

    def test_config_weights(self):
        config = MatchConfig(word_weight=50, substring_bonus=0)
        assert calculate_similarity("Tender", "Chicken Tenders", config) == 25


class TestMatchProductName:

    def test_exact_match_wins(self):
        assert match_product_name("chicken tenders", ["Chicken Tenders"]) == "Chicken Tenders"

    def test_exact_match_ignores_variation_table(self):
        config = MatchConfig(variations={})
        assert match_product_name("chicken tenders", ["Chicken Tenders"], config=config) == "Chicken Tenders"

    def test_fuzzy_match_above_threshold(self):
        match = resolve_product("Tender", ["Chicken Tenders"])
        assert match["canonical_name"] == "Chicken Tenders"
        assert match["match_type"] == "fuzzy"
        assert 30 <= match["score"] < 100

    def test_unrelated_name_has_no_match(self):
        assert match_product_name("Napkins", ["Chicken Tenders", "Beef Brisket"]) is None

    def test_threshold_is_configurable(self):
        config = MatchConfig(threshold=60)
        assert match_product_name("Tender", ["Chicken Tenders"], config=config) is None

    def test_explicit_mapping_overrides_fuzzy(self):
        mapping = {normalize_product_name("Tndrs"): "Chicken Tenders"}
        references = ["Tndrs Platter", "Chicken Tenders"]
        match = resolve_product("Tndrs", references, mapping)
        assert match["canonical_name"] == "Chicken Tenders"
        assert match["match_type"] == "mapped"

    def test_mapping_applies_without_reference_list(self):
        assert match_product_name("TNDRS!", [], {"tndrs": "Chicken Tenders"}) == "Chicken Tenders"

    def test_empty_inputs(self):
        assert match_product_name("", ["Chicken Tenders"]) is None
        assert match_product_name(None, ["Chicken Tenders"]) is None
        assert match_product_name("Chicken Tenders", []) is None

    def test_first_entry_wins_ties(self):
        references = ["Wings Basket", "Wings Bucket"]
        assert match_product_name("Wings", references) == "Wings Basket"

    def test_best_score_wins(self):
        references = ["Beef Brisket", "Pretzel Bites", "Soft Pretzel Bites Platter"]
        assert match_product_name("pretzel bite", references) == "Pretzel Bites"

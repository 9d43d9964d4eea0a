"""
Product name matching.

Matching pipeline (in order of confidence):
  1. Explicit mapping sheet entry (normalized invoice name -> reference name)
  2. Exact match after normalization
  3. Heuristic word-overlap score against every reference product

Names go through a normalization step first so "The Wings!!" and "wings"
compare equal. The word rules are deliberately crude: a trailing "s" is
treated as a plural and long words match when one contains the other, so
unrelated words can occasionally pair up.
"""

import re
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from portal_data import (
    WORD_VARIATIONS, MATCH_THRESHOLD, WORD_SCORE_WEIGHT,
    SUBSTRING_BONUS, MIN_SUBSTRING_TOKEN_LENGTH,
)

_LEADING_ARTICLE = re.compile(r"^(the|a|an)\s+")
_TRAILING_ARTICLE = re.compile(r"\s+(the|a|an)$")
_NOT_LETTER_OR_DIGIT = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class MatchConfig:
    """Tunable knobs for product matching. Defaults come from portal_data."""
    threshold: float = MATCH_THRESHOLD
    word_weight: float = WORD_SCORE_WEIGHT
    substring_bonus: float = SUBSTRING_BONUS
    min_substring_length: int = MIN_SUBSTRING_TOKEN_LENGTH
    variations: Mapping[str, Sequence[str]] = field(default_factory=lambda: dict(WORD_VARIATIONS))


DEFAULT_CONFIG = MatchConfig()


def normalize_product_name(name: str | None) -> str:
    """
    Canonicalize a product name for comparison.

    Lower-cases, drops one leading and one trailing article, turns
    punctuation into spaces and collapses whitespace.
    """
    if not name:
        return ""

    normalized = str(name).lower().strip()
    normalized = _LEADING_ARTICLE.sub("", normalized)
    normalized = _TRAILING_ARTICLE.sub("", normalized)
    normalized = _NOT_LETTER_OR_DIGIT.sub(" ", normalized)
    normalized = _WHITESPACE.sub(" ", normalized)
    return normalized.strip()


def tokenize_product_name(name: str | None) -> list[str]:
    """Normalized words of a product name, single characters dropped."""
    return [word for word in normalize_product_name(name).split() if len(word) > 1]


def _singular(word: str) -> str:
    return word[:-1] if word.endswith("s") else word


def words_similar(word1: str, word2: str,
                  variations: Mapping[str, Sequence[str]] = WORD_VARIATIONS,
                  min_substring_length: int = MIN_SUBSTRING_TOKEN_LENGTH) -> bool:
    """Decide whether two lower-cased words should count as the same word."""
    if word1 == word2:
        return True

    singular1 = _singular(word1)
    singular2 = _singular(word2)
    if singular1 == word2 or word1 == singular2 or singular1 == singular2:
        return True

    for key, forms in variations.items():
        if (word1 == key and word2 in forms) or (word2 == key and word1 in forms):
            return True

    # Compound words ("cheeseburger" vs "burger")
    if len(word1) > min_substring_length and len(word2) > min_substring_length:
        if word1 in word2 or word2 in word1:
            return True

    return False


def calculate_similarity(product_name: str, reference_name: str,
                         config: MatchConfig = DEFAULT_CONFIG) -> float:
    """
    Score how well a vendor product name matches a reference name, 0-100.

    Every pair of similar words counts (no de-duplication), scaled by the
    longer name's word count. Containment of one full name in the other adds
    a fixed bonus.
    """
    product_words = tokenize_product_name(product_name)
    reference_words = tokenize_product_name(reference_name)
    if not product_words or not reference_words:
        return 0

    normalized_product = normalize_product_name(product_name)
    normalized_reference = normalize_product_name(reference_name)
    if normalized_product == normalized_reference:
        return 100

    matches = sum(
        1
        for p_word in product_words
        for r_word in reference_words
        if words_similar(p_word, r_word, config.variations, config.min_substring_length)
    )
    word_score = matches / max(len(product_words), len(reference_words)) * config.word_weight

    substring_score = 0
    if normalized_reference in normalized_product or normalized_product in normalized_reference:
        substring_score = config.substring_bonus

    return min(100, word_score + substring_score)


def resolve_product(product_name: str | None, reference_products: Sequence[str],
                    mapping: Mapping[str, str] | None = None,
                    config: MatchConfig = DEFAULT_CONFIG) -> dict:
    """
    Match a vendor product name against the reference product list.

    Returns:
        canonical_name: The reference product name (or None)
        match_type: "mapped", "exact", "fuzzy", or "none"
        score: 0 to 100
    """
    if not product_name:
        return {"canonical_name": None, "match_type": "none", "score": 0}

    normalized = normalize_product_name(product_name)

    # 1. Mapping sheet wins over everything
    if mapping and normalized in mapping:
        return {"canonical_name": mapping[normalized], "match_type": "mapped", "score": 100}

    if not reference_products:
        return {"canonical_name": None, "match_type": "none", "score": 0}

    # 2. Exact match
    for reference in reference_products:
        if normalize_product_name(reference) == normalized:
            return {"canonical_name": reference, "match_type": "exact", "score": 100}

    # 3. Fuzzy match; first reference wins ties
    best_score = -1
    best_match = None
    for reference in reference_products:
        score = calculate_similarity(product_name, reference, config)
        if score > best_score:
            best_score = score
            best_match = reference

    if best_score >= config.threshold:
        return {"canonical_name": best_match, "match_type": "fuzzy", "score": best_score}

    return {"canonical_name": None, "match_type": "none", "score": max(best_score, 0)}


def match_product_name(product_name: str | None, reference_products: Sequence[str],
                       mapping: Mapping[str, str] | None = None,
                       config: MatchConfig = DEFAULT_CONFIG) -> str | None:
    """Reference product name for a vendor product name, or None."""
    return resolve_product(product_name, reference_products, mapping, config)["canonical_name"]

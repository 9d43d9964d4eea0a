"""
Static reference data for the food portal.

Category buckets used by the cost breakdown, the word-variation table and
scoring constants used by the product matcher, and the keyword lists used
when spreadsheet columns have to be guessed from their headers.

Nothing here is mutated at runtime. The matcher and aggregator receive these
values through MatchConfig so tests can swap them out.
"""

# ── Cost categories ────────────────────────────────────────────────
# Category value -> key in the breakdown output.
CATEGORY_BUCKETS = {
    "FOOD": "food",
    "DRINKS": "drinks",
    "BOWLING": "bowling",
    "DARTS": "darts",
    "MINI_GOLF": "mini_golf",
    "SHUFFLEBOARD": "shuffleboard",
    "KARAOKE": "karaoke",
    "OTHER_ENTERTAINMENT": "other_entertainment",
    "BOOKING_FEE": "booking_fee",
}

ENTERTAINMENT_BUCKETS = [
    "bowling", "darts", "mini_golf", "shuffleboard", "karaoke", "other_entertainment",
]

# Older extraction output used a single entertainment bucket.
LEGACY_CATEGORY_ALIASES = {
    "ENTERTAINMENT": "OTHER_ENTERTAINMENT",
}

# Every figure reported per document and in the combined totals, in output order.
TOTAL_KEYS = [
    "food", "drinks",
    *ENTERTAINMENT_BUCKETS,
    "entertainment", "booking_fee", "grand_total",
]

# ── Product matching ───────────────────────────────────────────────
# Canonical word -> surface forms treated as the same word.
WORD_VARIATIONS = {
    "wing": ["wings"],
    "pretzel": ["pretzels"],
    "bite": ["bites"],
    "tender": ["tenders"],
    "chicken": ["chickens"],
    "beef": ["beefs"],
    "pork": ["porks"],
}

MATCH_THRESHOLD = 30          # minimum score (0-100) for a fuzzy match
WORD_SCORE_WEIGHT = 80        # share of the score carried by word overlap
SUBSTRING_BONUS = 15          # one full name contains the other
MIN_SUBSTRING_TOKEN_LENGTH = 3  # tokens must be longer than this for containment

UNMATCHED_ITEMS_LIMIT = 50

# ── Spreadsheet column fallback ────────────────────────────────────
COLUMN_KEYWORDS = {
    "product_column": ["product", "description", "item", "name"],
    "price_column": ["price", "unit", "cost"],
    "date_column": ["date", "order"],
}

# Mapping sheet header naming the canonical product column.
MAPPING_REFERENCE_KEYWORDS = ["reference", "target", "match", "standard"]

SAMPLE_ROWS_FOR_COLUMN_DETECTION = 5

# ── Upload limits ──────────────────────────────────────────────────
DOCUMENT_MIME_TYPES = {"application/pdf", "image/png", "image/jpeg", "image/jpg"}
MAX_DOCUMENTS = 10
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

SPREADSHEET_EXTENSIONS = (".xlsx", ".xlsm")
MAX_VENDOR_FILES = 50
MAX_SPREADSHEET_BYTES = 20 * 1024 * 1024

MAX_PDF_PAGES = 5

"""Shared constants across the application."""

# Query normalization
MAX_QUERY_LENGTH = 128
MAX_DISTANCE_INPUT_LENGTH = 64

# Ingestion caps
MAX_QUERY_KEYS = 5000
MAX_CATEGORY_KEYS = 1000
MAX_VARIANTS_PER_CANONICAL = 500

# Spelling cluster caps
MAX_CANONICAL_KEYS = 2000
MAX_VARIANTS_CHECKED_PER_CLUSTER = 200
MAX_VARIANTS_PER_CLUSTER = 8
MAX_SPELLING_EDIT_DISTANCE = 2
MIN_SPELLING_VARIANT_COUNT = 2

# Output sizes
MISSING_PRODUCTS_LIMIT = 5
UNDERPERFORMING_CATEGORIES_LIMIT = 10
QUICK_WINS_LIMIT = 10
SPELLING_CLUSTERS_LIMIT = 10

# Missing-product scorer
MISSING_MIN_SEARCHES = 5
MISSING_MIN_ZERO_RESULTS = 3
MISSING_LOW_AVG_RESULTS = 1.0
MISSING_WEIGHTS = {
    "zero_result": 5.0,
    "search": 1.0,
    "low_avg_bonus": 10.0,
    "not_in_inventory": 25.0,
    "low_stock": 15.0,
    "checkout": 5.0,
    "add_to_cart": 2.0,
}

# Underperforming-category scorer
CATEGORY_MIN_SEARCHES = 10
CATEGORY_LOW_AVG_RESULTS = 2.0
CATEGORY_HIGH_ZERO_RATE = 0.3
CATEGORY_WEIGHTS = {
    "search": 1.0,
    "low_avg_bonus": 10.0,
    "zero_rate": 50.0,
}

# Quick-win scorer
QUICK_WIN_MIN_SEARCHES = 3
QUICK_WIN_MAX_SEARCHES = 12
QUICK_WIN_LOW_AVG_RESULTS = 2.0
QUICK_WIN_WEIGHTS = {
    "has_zero_results": 20.0,
    "low_avg_bonus": 10.0,
    "search": 1.0,
    "not_in_inventory": 10.0,
    "low_stock": 8.0,
    "checkout": 4.0,
    "add_to_cart": 1.5,
}
QUICK_WIN_IMPACT_ADD_PRODUCT = "Add matching product"
QUICK_WIN_IMPACT_IMPROVE_INDEX = "Improve index / metadata"

LOW_STOCK_THRESHOLD = 5

# Time windows
DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 365

# Caller-side fetch limits
DEFAULT_MAX_LOG_ROWS = 20000
DEFAULT_INVENTORY_LIMIT = 300

# Conversion types
CONVERSION_ADD_TO_CART = "add_to_cart"
CONVERSION_CHECKOUT = "checkout"

# Digests
DIGEST_FREQUENCIES = ["daily", "weekly", "monthly"]
DIGEST_SEND_HOUR = 9
DIGEST_SECTION_LIMIT = 5

"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LIST_LIMIT = 50
MAX_PAGE_SIZE = 1000
HOURS_DISPLAY_PRECISION = 2

DEFAULT_TIMEZONE = "UTC"

# Thresholds used to classify a closed shift.
DEFAULT_STANDARD_DAY_HOURS = 8.0
DEFAULT_MIN_DAY_HOURS = 7.0
DEFAULT_MAX_DAILY_HOURS = 12.0

DEFAULT_STORE_RETRY_ATTEMPTS = 3
DEFAULT_STORE_RETRY_BACKOFF_SECONDS = 0.2
DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0
DEFAULT_SUMMARY_CACHE_MAX_ENTRIES = 1024

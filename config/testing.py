import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_test"),
    "connect_timeout": 2,
}

# Tests never need a running database.
STORE_BACKEND = "memory"
TIMEZONE = "UTC"
VALIDATE_EMPLOYEES = False

STORE_RETRY_ATTEMPTS = 2
STORE_RETRY_BACKOFF_SECONDS = 0.0
LOCK_TIMEOUT_SECONDS = 2.0
REQUEST_TIMEOUT_SECONDS = 0

SUMMARY_CACHE_ENABLED = True
SUMMARY_CACHE_MAX_ENTRIES = 256

STANDARD_DAY_HOURS = 8.0
MIN_DAY_HOURS = 7.0
MAX_DAILY_HOURS = 12.0

LOG_LEVEL = "WARNING"
DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False

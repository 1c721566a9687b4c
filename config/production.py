import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "timekeeping"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping"),
    "connect_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "5")),
}

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")
TIMEZONE = os.getenv("TIMEZONE", "UTC")
VALIDATE_EMPLOYEES = bool(int(os.getenv("VALIDATE_EMPLOYEES", "1")))

STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))
STORE_RETRY_BACKOFF_SECONDS = float(os.getenv("STORE_RETRY_BACKOFF_SECONDS", "0.2"))
LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "5"))
# Per-request deadline for API calls (0 disables).
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# In-process only: enable just for a single worker process, since writes from
# other processes never invalidate it.
SUMMARY_CACHE_ENABLED = bool(int(os.getenv("SUMMARY_CACHE_ENABLED", "0")))
SUMMARY_CACHE_MAX_ENTRIES = int(os.getenv("SUMMARY_CACHE_MAX_ENTRIES", "1024"))

STANDARD_DAY_HOURS = float(os.getenv("STANDARD_DAY_HOURS", "8"))
MIN_DAY_HOURS = float(os.getenv("MIN_DAY_HOURS", "7"))
MAX_DAILY_HOURS = float(os.getenv("MAX_DAILY_HOURS", "12"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

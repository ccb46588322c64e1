import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "tutoring_ledger"),
    "lock_wait_timeout": int(os.getenv("DB_LOCK_WAIT_TIMEOUT", "10")),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

HORIZON_DAYS = int(os.getenv("HORIZON_DAYS", "56"))
ALLOW_BACKFILL = bool(int(os.getenv("ALLOW_BACKFILL", "0")))
TRANSIENT_RETRY_BACKOFF = float(os.getenv("TRANSIENT_RETRY_BACKOFF", "0.2"))
ROLLUP_TTL_SECONDS = float(os.getenv("ROLLUP_TTL_SECONDS", "30"))

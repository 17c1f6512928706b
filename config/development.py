import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_attendance"),
}

DEBUG = True

# Apply database/schema.sql on startup (idempotent: CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Seed demo branches/accounts when the store is empty
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "1")))

# Push every change to MySQL; the local JSON cache is always written
REMOTE_SYNC_ENABLED = bool(int(os.getenv("REMOTE_SYNC_ENABLED", "1")))
CACHE_DIR = os.getenv("CACHE_DIR", ".cache/shift_attendance")

LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "5"))
LOCATION_TIMEOUT_SECONDS = float(os.getenv("LOCATION_TIMEOUT_SECONDS", "5"))
VERIFICATION_DELAY_SECONDS = float(os.getenv("VERIFICATION_DELAY_SECONDS", "1.5"))

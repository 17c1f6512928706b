import os
import tempfile

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = True

# Tests never touch MySQL
REMOTE_SYNC_ENABLED = False
CACHE_DIR = os.getenv("CACHE_DIR", os.path.join(tempfile.gettempdir(), "shift_attendance_test_cache"))

LATE_GRACE_MINUTES = 5
LOCATION_TIMEOUT_SECONDS = 5.0
VERIFICATION_DELAY_SECONDS = 0.0

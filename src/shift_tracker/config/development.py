import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_tracker"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Minutes past the grace period after which check-in is refused (per-shift max_late_minutes wins)
LATE_CHECKIN_EXTRA_MINUTES = int(os.getenv("LATE_CHECKIN_EXTRA_MINUTES", "60"))

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo shifts/policies/agents on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

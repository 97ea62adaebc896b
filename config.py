import os
from pathlib import Path

# Path to the SQLite database file used by stores. Can be overridden
# using the LADDERS_DB_PATH environment variable.
DB_PATH = os.environ.get("LADDERS_DB_PATH", str(Path(__file__).parent / "db.sqlite3"))

# Optional Redis URL. When set, per-team critical sections use Redis locks so
# several server processes can share one database safely.
REDIS_URL = os.environ.get("REDIS_URL") or None

# Fallback webhook for chat notifications (empty disables them).
DISCORD_WEBHOOK_URL = os.environ.get("DISCORD_WEBHOOK_URL", "").strip()
NOTIFY_TIMEOUT_SECONDS = float(os.environ.get("NOTIFY_TIMEOUT_SECONDS", "5"))

SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", str(14 * 24)))
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

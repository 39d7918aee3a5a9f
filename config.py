import os
from pathlib import Path

# ----------------------------------------------------------------------------
# Auth
# ----------------------------------------------------------------------------
SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days

# ----------------------------------------------------------------------------
# Database
# ----------------------------------------------------------------------------
# Prefer PostgreSQL if provided, otherwise fall back to SQLite (so server always boots)
_env_db = os.getenv("DATABASE_URL", "").strip()
if _env_db:
    DATABASE_URL = _env_db
else:
    DATABASE_URL = "sqlite+aiosqlite:///./app.db"

USING_SQLITE = DATABASE_URL.startswith("sqlite")

# ----------------------------------------------------------------------------
# Uploads
# ----------------------------------------------------------------------------
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5MB
UPLOAD_CHUNK_SIZE = 64 * 1024
ALLOWED_UPLOAD_TYPES = ("image/jpeg", "image/png", "image/jpg", "application/pdf")
BULK_PREVIEW_SIZE = 5

# ----------------------------------------------------------------------------
# Extraction
# ----------------------------------------------------------------------------
TESSERACT_CONFIG = os.getenv("TESSERACT_CONFIG", "--oem 3 --psm 6")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

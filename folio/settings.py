"""Centralized environment-driven settings.

Keep this module lightweight: no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_database_url() -> str:
    """Resolve the database URL.

    FOLIO_DATABASE_URL wins; otherwise a PostgreSQL URL is built from the DB_*
    components when they are all present; otherwise a local SQLite file.
    """
    explicit = os.getenv("FOLIO_DATABASE_URL")
    if explicit:
        return explicit

    db_user = os.getenv("DB_USER")
    db_pass = os.getenv("DB_PASSWORD")
    db_name = os.getenv("DB_DATABASE")
    db_host = os.getenv("DB_HOST", "db")
    db_port = os.getenv("DB_PORT", "5432")

    if db_user and db_pass and db_name:
        # URL-encode the password in case it contains special characters
        encoded_pass = quote_plus(db_pass)
        return f"postgresql+psycopg://{db_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    return "sqlite:///./folio.db"


DATABASE_URL: str = get_database_url()

# Seconds a SQLite connection waits on a locked database before giving up.
SQLITE_BUSY_TIMEOUT_S: int = _int_env("SQLITE_BUSY_TIMEOUT_S", 30)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

JWT_SECRET_KEY: str | None = os.getenv("FOLIO_JWT_SECRET_KEY")
JWT_ALGORITHM: str = os.getenv("FOLIO_JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES: int = _int_env("FOLIO_JWT_EXPIRE_MINUTES", 60 * 24 * 7)

# Maximum accepted size of a single uploaded image (bytes).
MAX_UPLOAD_BYTES: int = _int_env("FOLIO_MAX_UPLOAD_BYTES", 100 * 1024 * 1024)

# Edge length of the square thumbnail generated for every post image.
THUMBNAIL_SIZE: int = _int_env("FOLIO_THUMBNAIL_SIZE", 300)
THUMBNAIL_JPEG_QUALITY: int = _int_env("FOLIO_THUMBNAIL_JPEG_QUALITY", 80)

ADMIN_USERNAME: str | None = os.getenv("ADMIN_USERNAME")
ADMIN_PASSWORD: str | None = os.getenv("ADMIN_PASSWORD")

CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost").split(",")
    if origin.strip()
]

"""
Centralized settings for the Photo Album backend.

Provides a lightweight wrapper around environment variables (with `.env`
support for local development) so the rest of the codebase can import a single
`get_settings()` helper when configuration is needed. This avoids ad-hoc calls
to `os.environ` spread across modules and keeps defaults consistent.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
import os

from dotenv import dotenv_values

DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


@dataclass(frozen=True)
class Settings:
    """Immutable view of application configuration."""

    # General
    environment: str
    log_level: str
    sentry_dsn: Optional[str]

    # Uploads
    storage_provider: str
    upload_path: Path
    max_file_size_bytes: int
    allowed_mime_types: frozenset[str]

    # Database
    database_url: str

    # S3 / object storage
    s3_bucket: str
    s3_region: str
    s3_endpoint: Optional[str]
    s3_use_ssl: bool
    s3_access_key_id: Optional[str]
    s3_secret_access_key: Optional[str]
    kms_key_id: Optional[str]

    @property
    def max_file_size_mb(self) -> int:
        return self.max_file_size_bytes // (1024 * 1024)


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_mime_set(value: Optional[str]) -> frozenset[str]:
    if not value:
        return frozenset(DEFAULT_ALLOWED_MIME_TYPES)
    return frozenset(part.strip().lower() for part in value.split(",") if part.strip())


def _env_lookup(key: str, env: dict[str, str], default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key) or env.get(key) or default


def normalize_database_url(url: str) -> str:
    """Force async drivers so the URL works with `create_async_engine`."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process."""

    env_path = Path(__file__).resolve().parents[2] / ".env"
    env_file = dotenv_values(str(env_path)) if env_path.exists() else {}

    return Settings(
        environment=_env_lookup("APP_ENV", env_file, "development"),
        log_level=_env_lookup("LOG_LEVEL", env_file, "INFO").upper(),
        sentry_dsn=_env_lookup("SENTRY_DSN", env_file),
        storage_provider=_env_lookup("STORAGE_PROVIDER", env_file, "local").lower(),
        upload_path=Path(_env_lookup("UPLOAD_PATH", env_file, "./uploads")),
        max_file_size_bytes=int(
            _env_lookup("MAX_FILE_SIZE_BYTES", env_file, str(DEFAULT_MAX_FILE_SIZE_BYTES))
        ),
        allowed_mime_types=_as_mime_set(_env_lookup("ALLOWED_MIME_TYPES", env_file)),
        database_url=normalize_database_url(
            _env_lookup("DATABASE_URL", env_file, "sqlite+aiosqlite:///./photoalbum.db")
        ),
        s3_bucket=_env_lookup("S3_BUCKET", env_file, "photo-album"),
        s3_region=_env_lookup("S3_REGION", env_file, "us-east-1"),
        s3_endpoint=_env_lookup("S3_ENDPOINT", env_file) or _env_lookup("S3_ENDPOINT_URL", env_file),
        s3_use_ssl=_as_bool(_env_lookup("S3_USE_SSL", env_file, "true"), True),
        s3_access_key_id=_env_lookup("S3_ACCESS_KEY_ID", env_file) or _env_lookup("S3_ACCESS_KEY", env_file),
        s3_secret_access_key=_env_lookup("S3_SECRET_ACCESS_KEY", env_file) or _env_lookup("S3_SECRET_KEY", env_file),
        kms_key_id=_env_lookup("KMS_KEY_ID", env_file),
    )


__all__ = ["Settings", "get_settings", "normalize_database_url"]

"""
VidTube Core Settings.

Every value can be overridden from the environment (``VIDTUBE_`` prefix) or a
local ``.env`` file.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        env_prefix="VIDTUBE_", case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "VidTube"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Include tracebacks in the failure envelope (never in production)
    expose_error_stack: bool = False

    # ── PostgreSQL ───────────────────────────────────────────────────────
    db_host: str = "postgres"
    db_port: int = 5432
    db_user: str = "vidtube"
    db_password: str = "vidtube_secret"
    db_name: str = "vidtube"
    db_echo: bool = False

    # Full DSN override, e.g. sqlite+aiosqlite:///./vidtube.db
    database_dsn: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Auth ─────────────────────────────────────────────────────────────
    access_token_secret: str = "change-me-access-token-secret-0123456789"
    refresh_token_secret: str = "change-me-refresh-token-secret-0123456789"
    token_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 10

    access_cookie_name: str = "access_token"
    refresh_cookie_name: str = "refresh_token"
    cookie_secure: bool = True
    cookie_samesite: str = "none"

    # ── MinIO / S3 (media host) ──────────────────────────────────────────
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "vidtube_minio"
    minio_secret_key: str = "vidtube_minio_secret"
    minio_bucket: str = "vidtube-media"
    minio_secure: bool = False
    minio_region: str = "us-east-1"
    # Public base for asset URLs; defaults to <endpoint>/<bucket>
    media_public_url: Optional[str] = None
    media_key_prefix: str = "uploads"

    # ── Listings ─────────────────────────────────────────────────────────
    default_page_size: int = 10
    max_page_size: int = 100

    # ── Paths ────────────────────────────────────────────────────────────
    temp_dir: str = "/tmp/vidtube"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

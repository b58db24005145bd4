"""
Environment-backed configuration for the Qorscend API.

Values are read once per process; nothing here is hot-reloaded.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the FastAPI service, sourced from the environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")
    testing: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Database
    database_url: str = Field(default="sqlite:///./qorscend.db")

    # Tokens
    jwt_secret: str = Field(default="qorscend-dev-secret")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_minutes: int = Field(default=7 * 24 * 60)
    bcrypt_rounds: int = Field(default=12)

    # HTTP surface
    cors_origin: str = Field(default="http://localhost:3000")
    frontend_url: str = Field(default="https://www.qorscend.com")

    # Storage
    upload_dir: str = Field(default="uploads")
    minio_endpoint: Optional[str] = Field(default=None)
    minio_access_key: Optional[str] = Field(default=None)
    minio_secret_key: Optional[str] = Field(default=None)
    minio_bucket: str = Field(default="uploads")

    sentry_dsn: Optional[str] = Field(default=None)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [qorscend-backend] %(name)s: %(message)s",
    )

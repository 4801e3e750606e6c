"""
Configuration and settings for the recipe API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (any SQLAlchemy URL; Postgres in production)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Google sign-in
    google_client_id: Optional[str] = Field(default=None)
    google_tokeninfo_url: str = Field(
        default="https://oauth2.googleapis.com/tokeninfo"
    )
    google_request_timeout: float = Field(default=30.0, gt=0)

    # Cloudflare Access. The CF_Authorization cookie is trusted without a
    # signature check unless require_verified_access_jwt is set.
    require_verified_access_jwt: bool = Field(default=False)
    access_team_domain: Optional[str] = Field(default=None)
    access_audience: Optional[str] = Field(default=None)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

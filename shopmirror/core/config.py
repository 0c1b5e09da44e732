from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Database
    database_url: str = "sqlite+aiosqlite:///./shopmirror.db"

    # Shopify credentials
    shopify_api_key: str
    shopify_api_password: str
    shopify_store_domain: str
    shopify_api_version: str = "2023-07"

    # Fetching
    shopify_pagination: Literal["cursor", "link"] = "cursor"
    shopify_page_size: int = Field(default=100, ge=1, le=250)
    shopify_min_request_interval: float = Field(default=0.25, ge=0)
    shopify_timeout: float = 30.0

    # Optional settings
    tz: str = "UTC"
    sync_minute: int = Field(default=0, ge=0, le=59)
    debug: bool = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

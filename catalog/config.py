"""
Configuration and settings for the catalog service.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog.connection import RetryPolicy


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Database (MongoDB expected)
    mongodb_uri: str = Field(default="mongodb://localhost:27017/catalog_dev")
    mongodb_database: str = Field(default="catalog_dev")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias="CATALOG_USE_IN_MEMORY_BACKENDS",
    )

    # Connect retry policy
    connect_max_retries: int = Field(default=5, ge=0)
    connect_initial_backoff_ms: float = Field(default=1000, gt=0)
    connect_max_backoff_ms: float = Field(default=10000, gt=0)

    log_level: str = Field(default="INFO")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.connect_max_retries,
            initial_backoff_ms=self.connect_initial_backoff_ms,
            max_backoff_ms=self.connect_max_backoff_ms,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

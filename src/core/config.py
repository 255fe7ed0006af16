"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database - when empty, the in-memory entity store is used
    database_url: str = Field(default="", validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Development mode - trusts DEV_USER_ID instead of the gateway's X-User-Id header
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")
    dev_user_id: str = Field(default="dev-user", validation_alias="DEV_USER_ID")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Summarization / suggestion agent
    summarizer_url: str = Field(
        default="http://localhost:8080",
        validation_alias="SUMMARIZER_URL",
    )
    summarizer_timeout: float = Field(
        default=20.0, gt=0, validation_alias="SUMMARIZER_TIMEOUT",
    )
    tag_inference_enabled: bool = Field(
        default=False, validation_alias="TAG_INFERENCE_ENABLED",
    )
    tag_inference_timeout: float = Field(
        default=10.0, gt=0, validation_alias="TAG_INFERENCE_TIMEOUT",
    )

    # Hydration behavior when a bookmark references a missing tag/collection/category
    dangling_reference_policy: Literal["drop", "strict"] = Field(
        default="drop", validation_alias="DANGLING_REFERENCE_POLICY",
    )

    # Checkout provider (Lemon Squeezy)
    lemonsqueezy_api_url: str = Field(
        default="https://api.lemonsqueezy.com",
        validation_alias="LEMONSQUEEZY_API_URL",
    )
    lemonsqueezy_api_key: str = Field(default="", validation_alias="LEMONSQUEEZY_API_KEY")
    lemonsqueezy_store_id: str = Field(default="", validation_alias="LEMONSQUEEZY_STORE_ID")
    checkout_timeout: float = Field(default=15.0, gt=0, validation_alias="CHECKOUT_TIMEOUT")

    # Field length limits
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_summary_length: int = Field(default=10_000, validation_alias="MAX_SUMMARY_LENGTH")
    max_name_length: int = Field(default=100, validation_alias="MAX_NAME_LENGTH")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE trusts a fixed user id for every request, so it must only be
        used with the in-memory store or a local development database.
        """
        if not self.dev_mode or not self.database_url:
            return self

        try:
            parsed = urlparse(self.database_url)
            hostname = parsed.hostname or ""
        except ValueError:
            # If we can't parse the URL, block DEV_MODE (fail-safe)
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def use_sql_store(self) -> bool:
        """True when a database is configured."""
        return bool(self.database_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

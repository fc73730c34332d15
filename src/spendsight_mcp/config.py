"""
Configuration for SpendSight MCP.

Values come from environment variables prefixed with ``SPENDSIGHT_`` or
from a local ``.env`` file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the ledger, validators and import pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="SPENDSIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Validation
    duplicate_threshold_seconds: int = Field(
        default=300,
        ge=0,
        description="Window in which same merchant/amount counts as a duplicate",
    )
    large_amount_threshold: float = Field(
        default=1_000_000,
        gt=0,
        description="Amounts above this are flagged as unusually large",
    )
    notes_max_length: int = Field(
        default=500,
        ge=0,
        description="Maximum length of transaction notes",
    )

    # CSV import
    import_extension: str = Field(
        default=".csv",
        description="Required filename extension for imports",
    )
    import_default_card_id: str = Field(
        default="card_imported",
        description="Card id assigned to imported rows without a cardid column",
    )
    import_skip_duplicates: bool = Field(
        default=False,
        description="Skip imported rows that look like duplicates",
    )

    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    log_level: str = Field(default="INFO")

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()

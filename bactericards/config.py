"""
Configuration settings for BacteriCards.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with BACTERICARDS_ (e.g. BACTERICARDS_DECK_PATH).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_PROPORTIONS = (25, 50, 75, 100)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACTERICARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    state_db_path: Path = Field(
        default=Path.home() / ".bactericards" / "state.db",
        description="SQLite file holding the persisted card statuses",
    )

    # ========================================
    # Deck
    # ========================================
    deck_path: Path = Field(
        default=Path("bacteries.json"),
        description="JSON file with the card records",
    )
    default_deck_proportion: int = Field(
        default=100,
        description="Share of the deck in play when nothing is stored yet (25/50/75/100)",
    )

    # ========================================
    # Session
    # ========================================
    seed: int | None = Field(
        default=None,
        description="Seed for subset selection and orientation flips (None = system entropy)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="WARNING",
        description="Loguru level for the CLI sink",
    )

    @field_validator("default_deck_proportion")
    @classmethod
    def _check_proportion(cls, value: int) -> int:
        if value not in ALLOWED_PROPORTIONS:
            raise ValueError(f"deck proportion must be one of {ALLOWED_PROPORTIONS}, got {value}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

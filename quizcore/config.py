"""
Configuration settings for quizcore.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with QUIZCORE_ (e.g. QUIZCORE_DATABASE_URL).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="QUIZCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///quizcore.db",
        description="SQLAlchemy connection string for the definition/override stores",
    )

    # ========================================
    # Grading
    # ========================================
    strict_unknown_types: bool = Field(
        default=False,
        description=(
            "Raise UnknownQuestionTypeError when grading a key that is neither "
            "configured nor builtin, instead of using the legacy default rules"
        ),
    )
    title_collation: Literal["casefold", "locale"] = Field(
        default="casefold",
        description=(
            "How question type titles are compared when sorting: 'casefold' is "
            "process-independent, 'locale' uses the current LC_COLLATE"
        ),
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Configuration Management for FineBook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Ledger rules that product may tune (default book, name length bounds)
live next to the storage locations so they are validated together at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Rules applied by the ledger engine."""

    model_config = SettingsConfigDict(
        env_prefix="FINEBOOK_LEDGER_",
        extra="ignore"
    )

    default_book_name: str = Field(
        default="My First Book",
        description="Name of the GENERAL book every new user starts with"
    )
    default_currency: str = Field(
        default="USD",
        description="Currency of the default book"
    )
    book_name_min_length: int = Field(
        default=3,
        ge=1,
        description="Minimum book name length after trimming"
    )
    book_name_max_length: int = Field(
        default=30,
        ge=1,
        le=100,
        description="Maximum book name length after trimming"
    )
    msb_rate_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description=(
            "Relative difference allowed between source x rate and the "
            "receiving amount before a warning is raised"
        )
    )

    @model_validator(mode='after')
    def validate_name_bounds(self) -> 'LedgerSettings':
        if self.book_name_min_length > self.book_name_max_length:
            raise ValueError("book_name_min_length cannot exceed book_name_max_length")
        return self


class StorageSettings(BaseSettings):
    """Where the durable collection and the session pointer live."""

    model_config = SettingsConfigDict(
        env_prefix="FINEBOOK_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".finebook",
        description="Directory holding the ledger files"
    )
    users_file: str = Field(
        default="finebook-users.json",
        description="File name of the durable user collection"
    )
    session_file: str = Field(
        default="finebook-session.json",
        description="File name of the session pointer"
    )

    @field_validator('data_dir')
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        return v.expanduser()

    @property
    def users_path(self) -> Path:
        return self.data_dir / self.users_file

    @property
    def session_path(self) -> Path:
        return self.data_dir / self.session_file


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Standard library log level for the finebook loggers"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def effective_log_level(self) -> str:
        """debug_mode overrides log_level."""
        return "DEBUG" if self.debug_mode else self.log_level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()

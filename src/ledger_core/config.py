"""Configuration management for Ledger Core."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Display name for the ledger owner in settlement descriptions
    owner_name: str = "You"

    # Currency used for net worth, receivables and payables
    base_currency: str = "BRL"

    # Recurrence catch-up bound (periods per template per run)
    max_catchup_periods: int = Field(default=12, ge=1)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your LEDGER_* environment "
            f"variables or .env file.\n"
            f"Error: {e}"
        ) from e

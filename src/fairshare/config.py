"""Configuration management for FairShare."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FAIRSHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Settlement settings
    prefer_simplified: bool = True  # Greedy netting instead of pairwise debts

    # Exchange rate settings
    exchange_rate_api_url: str = "https://api.frankfurter.app"
    exchange_rate_timeout: float = 30.0
    exchange_rate_ttl_hours: float = 12.0  # Cached rates older than this refetch

    # Display settings
    currency_symbol: str = ""

    # Logging
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the FAIRSHARE_* environment "
            f"variables or your .env file.\n"
            f"Error: {e}"
        ) from e

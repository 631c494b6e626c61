"""Configuration management for GroupSplit."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GROUPSPLIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Amounts at or below this are treated as settled (one cent)
    settle_epsilon: float = Field(0.01, gt=0)

    # Display settings
    currency_symbol: str = "€"

    # Database path
    database_path: Path = Path.home() / ".groupsplit" / "groupsplit.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the GROUPSPLIT_* environment "
            f"variables and your .env file.\n"
            f"Error: {e}"
        ) from e

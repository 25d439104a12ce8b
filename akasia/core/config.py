"""Akasia Operations Ledger - Core Configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Akasia Operations Ledger"
    debug: bool = False
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./akasia.db",
        description="Async SQLAlchemy connection string (aiosqlite or aiomysql driver)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: str | None = Field(default=None, description="Optional log file path")

    # Spending / wallet defaults
    default_wallet_name: str = Field(
        default="Global Wallet", description="Name of the singleton cash-float wallet"
    )
    default_funding_source: str = Field(
        default="Yayasan", description="Funding source used when none is given"
    )

    # Calendar sanity bounds (Gregorian years)
    calendar_min_year: int = Field(default=1900, description="Earliest accepted Gregorian year")
    calendar_max_year: int = Field(default=2200, description="Latest accepted Gregorian year")

    # Listing limits
    ledger_list_limit: int = Field(default=50, ge=1, description="Default ledger page size")
    wallet_overview_limit: int = Field(
        default=25, ge=1, description="Recent wallet entries shown in the overview"
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parsed CORS origins."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

"""Application configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./holdings.db"

    # Stooq (equities, keyless CSV quotes)
    STOOQ_BASE_URL: str = "https://stooq.com"
    STOOQ_MARKET_SUFFIX: str = "us"

    # CoinGecko (crypto). The API key is optional; without it the
    # keyless public API is used.
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: str = ""

    # Shared provider settings
    QUOTE_CURRENCY: str = "usd"
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    # Frontend origins allowed by CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("PROVIDER_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Every provider call needs a finite, positive timeout."""
        if v <= 0:
            raise ValueError(f"PROVIDER_TIMEOUT_SECONDS must be positive, got {v!r}")
        return v

    @field_validator("QUOTE_CURRENCY", "STOOQ_MARKET_SUFFIX", mode="before")
    @classmethod
    def lowercase_codes(cls, v: str) -> str:
        """Both providers expect lowercase currency / market codes."""
        return v.strip().lower() if isinstance(v, str) else v

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()

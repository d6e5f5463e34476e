"""
Application settings using Pydantic.

Loads configuration from environment variables with validation and type coercion.
"""

from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseType(str, Enum):
    """Database backend type."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class PricingSettings(BaseSettings):
    """Odds repricing parameters."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="ignore")

    base_probability: float = Field(
        default=0.10,
        alias="PRICING_BASE_PROBABILITY",
        description="Target probability of an option with no house exposure",
    )
    exposure_weight: float = Field(
        default=0.70,
        alias="PRICING_EXPOSURE_WEIGHT",
        description="Probability added per unit of exposure / loss cap",
    )
    probability_floor: float = Field(
        default=0.01,
        alias="PRICING_PROBABILITY_FLOOR",
        description="Lowest target probability for any option",
    )
    min_odds: float = Field(
        default=1.01,
        alias="PRICING_MIN_ODDS",
        description="Absolute floor for published decimal odds",
    )


class MarketSettings(BaseSettings):
    """Bet creation limits and user defaults."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="ignore")

    default_user_credits: int = Field(
        default=1000,
        alias="DEFAULT_USER_CREDITS",
        description="Credits granted to a newly registered user",
    )
    min_options: int = Field(
        default=2,
        alias="MIN_OPTIONS",
        description="Minimum number of outcomes per bet",
    )
    max_initial_odds: float = Field(
        default=99.99,
        alias="MAX_INITIAL_ODDS",
        description="Highest odds a creator may open an option at",
    )
    max_fee: float = Field(
        default=0.25,
        alias="MAX_FEE",
        description="Highest house margin a creator may configure (0.25 = 25%)",
    )
    max_title_length: int = Field(default=32, alias="MAX_TITLE_LENGTH")
    max_label_length: int = Field(default=32, alias="MAX_LABEL_LENGTH")


class RetrySettings(BaseSettings):
    """Caller-side retry policy for storage conflicts."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="RETRY_", extra="ignore")

    max_attempts: int = Field(default=3, description="Attempts including the first call")
    wait_seconds: float = Field(default=0.05, description="Initial backoff")
    max_wait_seconds: float = Field(default=1.0, description="Backoff ceiling")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_type: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        alias="DATABASE_TYPE",
        description="Database backend type",
    )
    database_url: str = Field(
        default="sqlite:///data/stakebook.db",
        alias="DATABASE_URL",
        description="Database connection URL",
    )
    lock_timeout_ms: int = Field(
        default=5000,
        alias="LOCK_TIMEOUT_MS",
        description="How long a stake waits on a row lock before giving up",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    log_file: Path = Field(
        default=Path("data/logs/stakebook.log"),
        alias="LOG_FILE",
        description="Log file path",
    )
    log_json: bool = Field(
        default=False,
        alias="LOG_JSON",
        description="Emit JSON logs instead of console output",
    )

    # Sub-settings (loaded from same .env)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    market: MarketSettings = Field(default_factory=MarketSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper


# Global settings instance - import this
settings = Settings()

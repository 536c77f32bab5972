"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal
from typing import Literal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from earnhub.config.business_constants import (
    DEFAULT_REFERRAL_MAX_DEPTH,
    DEFAULT_REFERRAL_RATES,
    DEFAULT_TRIAL_DURATION_DAYS,
    DEFAULT_TRIAL_PLAN_CODE,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./earnhub.db"
    database_echo: bool = False

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = "logs/earnhub.log"

    # Trial window
    trial_duration_days: int = Field(
        default=DEFAULT_TRIAL_DURATION_DAYS,
        ge=0,
        description="Length of the trial window in operative days",
    )
    trial_plan_code: str | None = Field(
        default=DEFAULT_TRIAL_PLAN_CODE,
        description="Plan code assigned at provisioning (None = cheapest active plan)",
    )
    post_trial_plan_code: str | None = Field(
        default=None,
        description="Plan code applied when a trial expires (None = cheapest non-trial plan)",
    )
    trial_expiry_policy: Literal["downgrade", "suspend"] = Field(
        default="downgrade",
        description=(
            "downgrade: move expired trials to the post-trial plan; "
            "suspend: stop earning until an explicit upgrade"
        ),
    )
    trial_sweep_interval_minutes: int = Field(default=60, gt=0)
    trial_sweep_batch_size: int = Field(default=500, gt=0)

    # Referral program
    referral_rates: list[Decimal] = Field(
        default_factory=lambda: list(DEFAULT_REFERRAL_RATES),
        description="Commission rate per depth, index 0 = direct referrer",
    )
    referral_max_depth: int = Field(
        default=DEFAULT_REFERRAL_MAX_DEPTH,
        ge=0,
        le=10,
        description="Maximum number of referral levels walked per event",
    )
    referral_code_length: int = Field(default=8, ge=6, le=20)
    referral_code_max_attempts: int = Field(default=5, gt=0)

    # Store contention handling
    store_retry_max_attempts: int = Field(default=3, gt=0, le=10)
    store_retry_base_delay: float = Field(
        default=0.05, ge=0, description="Base delay in seconds for exponential backoff"
    )

    # Deposits
    auto_upgrade_on_deposit: bool = Field(
        default=False,
        description="Upgrade to the best affordable plan when a deposit is confirmed",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("referral_rates")
    @classmethod
    def validate_referral_rates(cls, v: list[Decimal]) -> list[Decimal]:
        """Each rate must be a fraction between 0 and 1."""
        for rate in v:
            if rate < 0 or rate > 1:
                raise ValueError(
                    f"Invalid referral rate {rate}: must be between 0 and 1"
                )
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// or sqlite+aiosqlite://"
            )
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.database_url.startswith("sqlite"):
                raise ValueError(
                    "SQLite is not supported in production. "
                    "Set DATABASE_URL to a postgresql+asyncpg:// URL."
                )
            if self.database_echo:
                logger.warning("DATABASE_ECHO is enabled in production")
        if self.referral_max_depth > len(self.referral_rates):
            logger.debug(
                f"referral_max_depth={self.referral_max_depth} exceeds the "
                f"{len(self.referral_rates)} configured rates; deeper levels earn zero"
            )
        return self


# Global settings instance
settings = Settings()

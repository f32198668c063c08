"""
Application Settings for the Marketplace Backend

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    RAZORPAY_WEBHOOK_SECRET is deliberately optional here: a missing secret
    is reported per webhook call as a server misconfiguration (HTTP 500)
    instead of preventing the rest of the API from starting.
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Authentication (tokens are issued by the external auth service)
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"

    # Razorpay Configuration
    razorpay_key_id: Optional[str] = None
    razorpay_key_secret: Optional[str] = None
    razorpay_webhook_secret: Optional[str] = None
    # "TIER1:MONTHLY" -> "plan_xxx"
    razorpay_plan_ids: dict[str, str] = {}
    subscription_total_count: int = 12

    # Marketplace economics
    platform_fee_percentage: float = 10.0

    # Cron endpoints (Bearer token)
    cron_secret: Optional[str] = None

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("platform_fee_percentage")
    @classmethod
    def validate_fee(cls, value: float) -> float:
        """Platform fee is a percentage of the gig price."""
        if value < 0 or value > 100:
            raise ValueError("PLATFORM_FEE_PERCENTAGE must be between 0 and 100")
        return value

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()

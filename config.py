"""
Configuration module for the Returns & Refunds service.
Loads settings from environment variables (and .env).

Policy defaults below only seed a store's settings the first time the
store is read; evaluators always receive their rules as arguments.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    app_host: str = Field(
        default="0.0.0.0",
        alias="APP_HOST",
        description="Host to bind the application"
    )
    app_port: int = Field(
        default=8000,
        alias="APP_PORT",
        description="Port to bind the application"
    )

    # Data Store Configuration
    store_backend: str = Field(
        default="cosmos",
        alias="STORE_BACKEND",
        description="Persistence backend: 'cosmos' or 'memory'"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level"
    )

    # Default store policy
    default_window_days: int = Field(
        default=15,
        alias="DEFAULT_WINDOW_DAYS",
        description="Return/exchange window in days"
    )
    default_minimum_value: float = Field(
        default=50.0,
        alias="DEFAULT_MINIMUM_VALUE",
        description="Minimum order total eligible for returns"
    )
    default_require_photos: bool = Field(
        default=True,
        alias="DEFAULT_REQUIRE_PHOTOS",
        description="Require photo evidence before auto-approval"
    )
    default_auto_approve: bool = Field(
        default=True,
        alias="DEFAULT_AUTO_APPROVE",
        description="Auto-approve eligible requests with no review triggers"
    )
    default_auto_approve_limit: float = Field(
        default=100.0,
        alias="DEFAULT_AUTO_APPROVE_LIMIT",
        description="Refunds up to this amount may skip analysis"
    )
    exchange_auto_approve_days: int = Field(
        default=7,
        alias="EXCHANGE_AUTO_APPROVE_DAYS",
        description="Exchanges older than this always need manual approval"
    )
    default_currency: str = Field(
        default="BRL",
        alias="DEFAULT_CURRENCY",
        description="Currency recorded on new requests"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()

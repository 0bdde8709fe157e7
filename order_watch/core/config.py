"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two modes:
    - DEVELOPMENT: Uses a simulated order book, a JSON file store and a
      logging notification service (no API keys needed)
    - PRODUCTION: Uses the real Order API, Redis and the Expo push service

The ENV_MODE variable controls which collaborators are instantiated for
every watch session, so the same engine runs locally and in deployment.

Usage:
    from order_watch.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # Use mock services
    else:
        # Use real APIs

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with mock services
        PRODUCTION: Live environment with real API integrations
        STAGING: Pre-production testing with real APIs but test keys
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Sensitive values (tokens) should NEVER be committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Order Watch",
        description="Application display name"
    )
    app_version: str = Field(
        default="4.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8002,
        description="API server port"
    )

    # ==========================================================================
    # ORDER API
    # ==========================================================================

    order_api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the restaurant Order API"
    )
    order_api_timeout: float = Field(
        default=15.0,
        description="Seconds before an Order API request is abandoned"
    )
    history_window: int = Field(
        default=10,
        description="Recent history entries checked alongside the active set"
    )

    # ==========================================================================
    # POLLING CADENCE
    # ==========================================================================

    delivery_poll_interval_seconds: float = Field(
        default=5.0,
        description="Delivery partner order diff interval"
    )
    delivery_heartbeat_interval_seconds: float = Field(
        default=30.0,
        description="Delivery partner heartbeat interval"
    )
    admin_poll_interval_seconds: Optional[float] = Field(
        default=None,
        description="Admin diff interval (unset: driven by screen visits)"
    )

    # ==========================================================================
    # FEED / LEDGER BOUNDS
    # ==========================================================================

    feed_cap: int = Field(
        default=30,
        description="Maximum notification records kept in a feed"
    )
    ledger_cap: int = Field(
        default=100,
        description="Maximum order statuses kept in the ledger"
    )
    assigned_cap: int = Field(
        default=50,
        description="Maximum assigned order ids kept for delivery sessions"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol used in notification messages"
    )

    # ==========================================================================
    # FILE STORAGE
    # ==========================================================================

    data_directory: str = Field(
        default="data",
        description="Directory for the development key/value store"
    )
    storage_lock_timeout: int = Field(
        default=10,
        description="Seconds to wait for a store file lock"
    )

    # ==========================================================================
    # REDIS
    # ==========================================================================

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    redis_key_prefix: str = Field(
        default="order_watch:",
        description="Prefix applied to every Redis key"
    )

    # ==========================================================================
    # EXPO PUSH
    # ==========================================================================

    expo_push_url: str = Field(
        default="https://exp.host/--/api/v2/push/send",
        description="Expo push send endpoint"
    )
    expo_access_token: Optional[str] = Field(
        default=None,
        description="Expo access token (enhanced push security)"
    )

    # ==========================================================================
    # MOCK SERVICES
    # ==========================================================================

    mock_failure_rate: float = Field(
        default=0.05,
        description="Simulated failure rate for mock collaborators"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def use_real_services(self) -> bool:
        """Check if real external services should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.order_api_base_url.startswith("https://"):
                missing.append("ORDER_API_BASE_URL (https)")
            if not self.expo_access_token:
                missing.append("EXPO_ACCESS_TOKEN")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once and stay
    consistent across the application lifecycle.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("order_watch")

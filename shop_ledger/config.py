"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class ShopLedgerConfig(BaseSettings):
    """Shop ledger service configuration"""

    model_config = SettingsConfigDict(
        env_prefix="SHOP_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    cors_origins: List[str] = [
        "https://mannager.netlify.app",
        "https://mmanager.netlify.app",
        "http://localhost:5173",
    ]

    # Snapshot persistence
    snapshot_path: str = "data.json"

    # Bootstrap administrator (seeded when no snapshot can be read)
    bootstrap_admin_username: str = "ADMIN"
    bootstrap_admin_password: str = "ADMIN123"
    bootstrap_admin_name: str = "System Admin"
    bootstrap_admin_language: str = "rw"

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_expiry_hours: int = 24
    jwt_algorithm: str = "HS256"
    password_min_length: int = 3

    # Friday 18:00 - Saturday 18:30 closed window for mutating requests
    enforce_closed_hours: bool = False

    # Business rules configuration
    low_stock_threshold: int = 5
    recent_notifications_limit: int = 10
    currency_label: str = "FRW"

    # Logging configuration
    log_level: str = "INFO"
    log_file: Optional[str] = None  # If None, logs to stdout


# Global configuration instance
config = ShopLedgerConfig()


def get_config() -> ShopLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ShopLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = ShopLedgerConfig()
    return config

"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ActionBankConfig(BaseSettings):
    """Action Bank service configuration"""

    model_config = SettingsConfigDict(
        env_prefix="ACTION_BANK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "json"  # json or memory
    data_location: str = "./data/"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Security configuration
    jwt_secret: str = "default_secret"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 12
    password_min_length: int = 8
    password_reset_timeout_minutes: int = 15
    password_hash_n: int = 16384  # scrypt cost factor

    # First-run convenience account, created only when the user store is empty
    bootstrap_admin: bool = True
    bootstrap_username: str = "admin"
    bootstrap_email: str = "admin@admin.admin"
    bootstrap_password: str = "password"

    # Query configuration
    default_page_size: int = 10

    # Logging configuration
    log_level: str = "INFO"


# Global configuration instance
config = ActionBankConfig()


def get_config() -> ActionBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ActionBankConfig:
    """Reload configuration from environment"""
    global config
    config = ActionBankConfig()
    return config

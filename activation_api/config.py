"""
Configuration for the application
"""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings
    """

    database_url: str  # PostgreSQL connection (asyncpg format)
    redis_url: str = ""
    frontend_url: str = "http://localhost:3000"  # Optional with default

    # Auth0 configuration
    auth_disabled: bool = False
    auth0_domain: str = ""
    auth0_audience: str = ""

    # Shared secret for scheduler-triggered endpoints (Authorization: Bearer ...)
    cron_secret: str = ""

    # Control Tower (external trial lifecycle system)
    control_tower_api_url: str = "https://app.autosalvageautomation.com"
    control_tower_api_key: str = ""  # Also accepted as X-API-KEY on inbound signals

    # Brevo transactional email
    brevo_api_url: str = "https://api.brevo.com/v3/smtp/email"
    brevo_api_key: str = ""
    default_sender_email: str = "no-reply@autosalvageautomation.com"
    default_sender_name: str = "Junk Car Calculator"

    # Outbound HTTP
    http_timeout_seconds: float = 10.0

    # Booking lock (only used when redis_url is set)
    booking_lock_timeout_seconds: int = 15

    class Config:
        """
        Configuration for the application settings
        """
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings with caching.

    Returns:
        Settings: The application configuration settings.
    """
    return Settings()

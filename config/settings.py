"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # STORAGE
    # ===================
    storage_backend: str = Field(
        default="file",
        pattern="^(file|supabase)$",
        description="Where orders and locations live"
    )
    data_dir: str = Field(
        default="data",
        description="Directory for the JSON file store"
    )
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # TELEGRAM
    # ===================
    telegram_bot_token: Optional[str] = Field(
        None,
        description="Telegram bot token from @BotFather"
    )
    telegram_chat_id: Optional[str] = Field(
        None,
        description="Telegram chat ID for kitchen delay alerts"
    )

    # ===================
    # KITCHEN DEFAULTS
    # ===================
    timezone: str = Field(
        default="Europe/Vienna",
        description="Local time zone of the kitchens"
    )
    default_buffer_minutes: int = Field(
        default=8,
        ge=0,
        le=240,
        description="Lead minutes between now and the earliest bookable slot"
    )
    default_regular_prep_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Prep seconds per unit outside rush hour"
    )
    default_rush_prep_seconds: int = Field(
        default=90,
        ge=0,
        le=3600,
        description="Prep seconds per unit during rush hour"
    )

    # ===================
    # RECONCILIATION
    # ===================
    reconciliation_enabled: bool = Field(
        default=True,
        description="Run the escalation and rebooking loops in the background"
    )
    escalation_poll_seconds: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="How often the escalator checks for a minute transition"
    )
    rebook_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        le=600,
        description="Interval between overdue rebooking runs"
    )
    rebook_max_iterations: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Pass budget for one rebooking run"
    )

    # ===================
    # CLOCK
    # ===================
    simulated_clock: bool = Field(
        default=True,
        description="Use the controllable simulated clock instead of wall time"
    )
    clock_speed: float = Field(
        default=1.0,
        ge=1,
        le=3600,
        description="Initial simulated clock speed multiplier"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()

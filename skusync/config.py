from datetime import datetime
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class AppConfig(BaseSettings):
    """Application configuration using Pydantic BaseSettings.

    Loads configuration from environment variables and .env file (if present).
    Fields are type-checked and validated. Defaults are provided where appropriate.
    Only the factories in skusync.cycles.util read this; everything else receives
    its values through constructor arguments.
    """
    # Application
    log_level: str = "DEBUG"

    # SkuVault API
    skuvault_base_url: str = "https://app.skuvault.com/api/"
    request_timeout_seconds: float = 30.0
    error_preview_chars: int = 500

    # Movement fetch window
    movements_lookback_days: int = 7
    movements_from_date: Optional[datetime] = None
    movements_to_date: Optional[datetime] = None

    # Sync cycle
    sync_enabled: bool = True
    sync_interval_minutes: int = 60
    sync_delay_start_minutes: int = 2

    # Low stock notification cycle
    low_stock_enabled: bool = True
    low_stock_check_interval_minutes: int = 60
    low_stock_startup_delay_minutes: int = 5
    low_stock_default_threshold: int = 10

    # Local store
    data_dir: str = "sample_data"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Return the AppConfig instance (singleton pattern)."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config

def set_config_for_test(**kwargs):
    """For testing only: override the AppConfig instance with new values."""
    global _config
    _config = AppConfig(**kwargs)

"""Configuration settings for ShopList."""
from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get project root directory (src/shoplist/config -> project root)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Default data and log directories
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_LOG_DIR = PROJECT_ROOT / "logs"
DEFAULT_LOG_FILE = DEFAULT_LOG_DIR / "shoplist.log"


class ShopListSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Storage
    STORAGE_DIR: Path = DEFAULT_DATA_DIR / "Shopping Lists"
    EXPORT_DIR: Path = DEFAULT_DATA_DIR / "Downloads"
    AUTOSAVE_INTERVAL: float = 5.0  # seconds

    # List Settings
    DEFAULT_SORT_ORDER: str = "last_modified"
    DEFAULT_LIST_PREFIX: str = "Shopping_List"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = DEFAULT_LOG_FILE
    LOG_FORMAT: str = "detailed"  # simple, detailed
    LOG_RETENTION_DAYS: int = 7
    LOG_ROTATION_SIZE_MB: int = 1

    model_config = SettingsConfigDict(
        env_prefix="SHOPLIST_",
        case_sensitive=False,
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Relative storage paths are anchored at the project root
        if not self.STORAGE_DIR.is_absolute():
            self.STORAGE_DIR = PROJECT_ROOT / self.STORAGE_DIR
        if not self.EXPORT_DIR.is_absolute():
            self.EXPORT_DIR = PROJECT_ROOT / self.EXPORT_DIR

        # Ensure log file path is absolute
        if self.LOG_FILE and not self.LOG_FILE.is_absolute():
            self.LOG_FILE = PROJECT_ROOT / self.LOG_FILE

    @field_validator("AUTOSAVE_INTERVAL")
    @classmethod
    def validate_autosave_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Auto-save interval must be positive")
        return v

    @field_validator("DEFAULT_SORT_ORDER")
    @classmethod
    def validate_sort_order(cls, v: str) -> str:
        valid_orders = ["last_modified", "created_date", "total_amount"]
        v = v.lower()
        if v not in valid_orders:
            raise ValueError(f"Sort order must be one of: {', '.join(valid_orders)}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        valid_formats = ["simple", "detailed"]
        v = v.lower()
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of: {', '.join(valid_formats)}")
        return v


@lru_cache()
def get_settings() -> ShopListSettings:
    """Get cached settings instance."""
    return ShopListSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache to force reload from environment."""
    get_settings.cache_clear()

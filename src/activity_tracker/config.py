"""Configuration settings for the activity tracker."""

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


# __file__ = src/activity_tracker/config.py
PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ACTIVITY_TRACKER_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Logging
    log_level: str = "INFO"
    redact_locations: bool = True

    # Storage
    db_path: Optional[Path] = None

    # Tracking
    min_fix_distance_m: float = 5.0
    tick_interval_sec: float = 1.0

    # Statistics
    account_created_at: Optional[date] = None

    # Background work (persist + aggregate)
    executor_workers: int = 2

    def model_post_init(self, __context) -> None:
        """Set default database path after initialization."""
        if self.db_path is None:
            self.db_path = PROJECT_ROOT / "activities.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
PathGuardian - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database (unset -> in-memory stores)
    database_url: Optional[str] = None

    # Image storage
    storage_dir: str = "media"
    storage_bucket: str = "danger-reports"
    public_base_url: str = "http://localhost:8000"
    max_image_bytes: int = 10 * 1024 * 1024

    # Backend used by the map session clients
    api_base_url: str = "http://localhost:8000"
    request_timeout: float = 30.0

    # Gamification
    points_report_submitted: int = 20
    points_marker_viewed: int = 5

    # Map
    map_default_style: str = "streets-v12"
    mapbox_access_token: Optional[str] = None

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: List[str] = ["*"]

    @property
    def uses_database(self) -> bool:
        return bool(self.database_url)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

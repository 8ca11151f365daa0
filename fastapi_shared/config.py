"""Library configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # Error responses
    debug: bool = False  # Include internal messages in error responses

    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_json: bool = True  # JSON format for production, False for human-readable
    system_name: str = "service"  # Appears as "system" in shipped log events
    developer_mode: bool = False  # Skip remote log shipping
    force_remote_logging: bool = False  # Ship logs even in developer mode

    # SolarWinds log collector
    solarwinds_api_token: str = ""
    solarwinds_region: str = "eu-01"
    log_sink_timeout: float = 5.0  # seconds

    # Firebase App Check
    firebase_project_id: str = ""
    firebase_service_account_json: str = ""
    app_check_dev_mode: bool = False
    app_check_cache_max_size: int = 1000
    app_check_cache_duration: float = 3600.0  # seconds

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Configuration for the App Check middleware."""

from typing import Optional

from pydantic import BaseModel, Field

from fastapi_shared.config import Settings, get_settings


class AppCheckConfig(BaseModel):
    """App Check settings for one application."""

    firebase_project_id: str = Field(..., description="Firebase project ID")
    service_account_json: str = Field(
        ..., description="Firebase service account JSON document (sensitive)", repr=False
    )
    enable_dev_mode: bool = Field(False, description="Bypass App Check entirely")
    exempt_paths: list[str] = Field(default_factory=list, description="Paths never checked")
    cache_max_size: int = Field(1000, gt=0, description="Maximum number of cached tokens")
    cache_duration: float = Field(3600.0, gt=0, description="Seconds a verified token stays cached")

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        exempt_paths: Optional[list[str]] = None,
    ) -> "AppCheckConfig":
        """Build a config from FIREBASE_* / APP_CHECK_* environment settings."""
        settings = settings or get_settings()
        return cls(
            firebase_project_id=settings.firebase_project_id,
            service_account_json=settings.firebase_service_account_json,
            enable_dev_mode=settings.app_check_dev_mode,
            exempt_paths=exempt_paths or [],
            cache_max_size=settings.app_check_cache_max_size,
            cache_duration=settings.app_check_cache_duration,
        )

"""CORS configuration backed by Starlette's CORSMiddleware."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

DEFAULT_ALLOWED_ORIGINS = ["*"]
DEFAULT_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
DEFAULT_ALLOWED_HEADERS = [
    "Origin",
    "Content-Type",
    "Accept",
    "Authorization",
    "X-Requested-With",
    "X-Firebase-AppCheck",
]
DEFAULT_MAX_AGE = 86400  # 24 hours


class CorsConfig(BaseModel):
    """Allowed origins, methods and headers for cross-origin requests."""

    allowed_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    allowed_methods: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_METHODS))
    allowed_headers: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_HEADERS))
    max_age: int = Field(DEFAULT_MAX_AGE, ge=0, description="Preflight cache duration in seconds")

    @property
    def allowed_origins_header(self) -> str:
        return ", ".join(self.allowed_origins)

    @property
    def allowed_methods_header(self) -> str:
        return ", ".join(self.allowed_methods)

    @property
    def allowed_headers_header(self) -> str:
        return ", ".join(self.allowed_headers)

    @property
    def max_age_header(self) -> str:
        return str(self.max_age)


def add_cors_middleware(app: FastAPI, config: CorsConfig | None = None) -> None:
    """Install CORSMiddleware on the app using the given configuration."""
    config = config or CorsConfig()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        max_age=config.max_age,
    )

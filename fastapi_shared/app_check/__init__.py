"""Firebase App Check verification and middleware."""

from fastapi_shared.app_check.config import AppCheckConfig
from fastapi_shared.app_check.middleware import AppCheckMiddleware
from fastapi_shared.app_check.service import FirebaseAppCheckService
from fastapi_shared.app_check.token_cache import AppCheckTokenCache

__all__ = [
    "AppCheckConfig",
    "AppCheckMiddleware",
    "AppCheckTokenCache",
    "FirebaseAppCheckService",
]

"""Firebase App Check verification with lazy, single-flight SDK setup."""

import asyncio
import logging
import os
import tempfile
import uuid
from typing import Optional

import firebase_admin
from firebase_admin import app_check, credentials

from fastapi_shared.app_check.config import AppCheckConfig

logger = logging.getLogger(__name__)

TEMP_FILE_PREFIX = "fastapi-shared-firebase-service-account-"


class FirebaseAppCheckService:
    """
    Verifies App Check tokens with the Firebase Admin SDK.

    The SDK app is created on first use. Concurrent callers share a single
    setup task: exactly one setup runs at a time, every caller waiting on it
    sees its result, and a failed setup is forgotten so the next call starts
    over.
    """

    def __init__(self, config: AppCheckConfig):
        self.config = config
        self._app: Optional[firebase_admin.App] = None
        self._init_task: Optional[asyncio.Task] = None

    @property
    def is_initialized(self) -> bool:
        return self._app is not None

    async def get_app(self) -> firebase_admin.App:
        """Return the Firebase app, creating it on first use."""
        if self._app is not None:
            return self._app

        # No await between the check and the assignment: only one caller
        # can publish the setup task.
        if self._init_task is None or self._init_task.cancelled():
            self._init_task = asyncio.ensure_future(self._initialize_once())

        # Shielded so a cancelled caller does not cancel setup for the others
        return await asyncio.shield(self._init_task)

    async def _initialize_once(self) -> firebase_admin.App:
        try:
            app = await self._initialize()
        except Exception:
            logger.error(
                "Failed to initialize Firebase Admin SDK",
                exc_info=True,
                extra={"firebase_project_id": self.config.firebase_project_id},
            )
            self._init_task = None
            raise

        self._app = app
        logger.info(
            f"Firebase Admin SDK initialized for project: {self.config.firebase_project_id}"
        )
        return app

    async def _initialize(self) -> firebase_admin.App:
        return await asyncio.to_thread(self._create_app)

    def _create_app(self) -> firebase_admin.App:
        """Create the SDK app from the service account (blocking)."""
        fd, path = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(self.config.service_account_json)
            credential = credentials.Certificate(path)
            return firebase_admin.initialize_app(
                credential,
                {"projectId": self.config.firebase_project_id},
                name=f"app-check-{self.config.firebase_project_id}-{uuid.uuid4().hex[:8]}",
            )
        finally:
            # The service account must not outlive setup, success or not
            if os.path.exists(path):
                os.remove(path)

    async def verify_token(self, token: str) -> bool:
        """
        Verify an App Check token.

        Returns False instead of raising for invalid tokens, unreachable
        backends and setup failures.
        """
        if self.config.enable_dev_mode:
            logger.info("App Check bypassed in dev mode")
            return True

        try:
            app = await self.get_app()
            await asyncio.to_thread(app_check.verify_token, token, app)
        except Exception as e:
            logger.warning(
                f"App Check token verification failed: {e}",
                extra={"error_class": type(e).__name__},
            )
            return False

        logger.debug("App Check token verified successfully")
        return True

    def close(self) -> None:
        """
        Delete the Firebase app and reset; the next call initializes again.

        Do not call while a setup is in flight.
        """
        if self._app is not None:
            firebase_admin.delete_app(self._app)
        self._app = None
        self._init_task = None

"""HTTP log collectors for shipping structured log events.

Delivery is a single POST per event. Failures are logged locally and never
raised to the caller.
"""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from fastapi_shared.metrics import LOG_EVENTS_SENT_TOTAL

logger = logging.getLogger(__name__)


class LogApiWrapper(ABC):
    """Base class for clients of external logging services."""

    #: Label used in metrics and local log lines
    name: str = "log_api"

    @abstractmethod
    async def track_event(self, body: str) -> None:
        """Send one JSON-encoded event to the logging service."""

    def track_event_sync(self, body: str) -> None:
        """
        Send one event from code that has no running event loop.

        The default drives ``track_event`` on a throwaway loop, which only
        suits wrappers holding no loop-bound resources. Network clients
        override it with a blocking implementation.
        """
        asyncio.run(self.track_event(body))

    async def aclose(self) -> None:
        """Release network resources."""


class _HttpLogApiWrapper(LogApiWrapper):
    """
    Shared POST logic for collectors reached over HTTPS.

    Holds two connection pools: an ``httpx.AsyncClient`` used from the
    event loop and an ``httpx.Client`` used from threads without one. An
    async client's connections are bound to the loop that opened them and
    cannot be shared with other loops.
    """

    def __init__(
        self,
        base_url: str,
        path: str,
        headers: dict,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.path = path
        self.timeout = timeout
        self._hinted_auth = False
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        # MockTransport serves both clients; real async transports do not
        sync_transport = transport if isinstance(transport, httpx.BaseTransport) else None
        self._sync_client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=sync_transport,
        )

    async def track_event(self, body: str) -> None:
        try:
            response = await self._client.post(self.path, content=body.encode("utf-8"))
        except Exception as e:
            self._report_failure(e)
            return
        self._check_response(response)

    def track_event_sync(self, body: str) -> None:
        try:
            response = self._sync_client.post(self.path, content=body.encode("utf-8"))
        except Exception as e:
            self._report_failure(e)
            return
        self._check_response(response)

    def _report_failure(self, error: Exception) -> None:
        if isinstance(error, httpx.TimeoutException):
            logger.error(
                f"Timed out sending event to {self.name}",
                extra={"sink": self.name, "timeout": self.timeout},
            )
        elif isinstance(error, httpx.HTTPError):
            logger.error(
                f"Error sending event to {self.name}: {error}",
                extra={"sink": self.name, "error_class": type(error).__name__},
            )
        else:
            logger.error(
                f"Unexpected error sending event to {self.name}: {error}",
                exc_info=(type(error), error, error.__traceback__),
                extra={"sink": self.name, "error_class": type(error).__name__},
            )
        self._record(False)

    def _check_response(self, response: httpx.Response) -> None:
        if response.status_code >= 300:
            logger.error(
                f"Failed to send event to {self.name}. Status code: {response.status_code}",
                extra={"sink": self.name, "status_code": response.status_code},
            )
            if response.status_code == 401:
                self._hint_credentials()
            self._record(False)
            return

        self._record(True)

    def _hint_credentials(self) -> None:
        if self._hinted_auth:
            return
        self._hinted_auth = True
        logger.error(f"{self.name} authentication failed (401). Check the configured credentials.")

    def _record(self, success: bool) -> None:
        LOG_EVENTS_SENT_TOTAL.labels(
            sink=self.name,
            success="true" if success else "false",
        ).inc()

    async def aclose(self) -> None:
        await self._client.aclose()
        self._sync_client.close()


class SolarWindsApiWrapper(_HttpLogApiWrapper):
    """
    Client for SolarWinds Observability log ingestion.

    Args:
        token: API ingestion token
        region: Data center region, e.g. ``eu-01``, ``na-01``, ``ap-01``
        timeout: HTTP timeout in seconds
        transport: Optional httpx transport (for tests)
    """

    name = "solarwinds"

    def __init__(
        self,
        token: str,
        region: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            logger.error("SolarWinds API token is empty - logs will not be sent to SolarWinds")
        super().__init__(
            base_url=f"https://logs.collector.{region}.cloud.solarwinds.com/v1",
            path="/logs",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/octet-stream",
            },
            timeout=timeout,
            transport=transport,
        )

    def _hint_credentials(self) -> None:
        if self._hinted_auth:
            return
        self._hinted_auth = True
        logger.error(
            "SolarWinds authentication failed (401). Check SOLARWINDS_API_TOKEN environment variable."
        )


class PapertrailApiWrapper(_HttpLogApiWrapper):
    """Client for the legacy Papertrail HTTP endpoint (basic auth)."""

    name = "papertrail"

    def __init__(
        self,
        username: str,
        password: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        super().__init__(
            base_url="https://logs.collector.solarwinds.com/v1",
            path="/log",
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

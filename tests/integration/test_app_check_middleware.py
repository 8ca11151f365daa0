"""
Integration tests for AppCheckMiddleware.

The Firebase service is replaced by a mock, so these tests cover routing,
caching and response shapes only.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fastapi_shared.app_check.config import AppCheckConfig
from fastapi_shared.app_check.middleware import AppCheckMiddleware
from fastapi_shared.app_check.token_cache import AppCheckTokenCache


@pytest.fixture
def verify_token():
    return AsyncMock(return_value=True)


@pytest.fixture
def token_cache():
    return AppCheckTokenCache(max_size=10, token_duration=60.0)


def build_app(verify_token, token_cache, debug=False, **config_overrides):
    config = AppCheckConfig(
        firebase_project_id="test-project",
        service_account_json="{}",
        exempt_paths=["/ping"],
        **config_overrides,
    )
    service = MagicMock()
    service.verify_token = verify_token

    app = FastAPI()
    app.add_middleware(
        AppCheckMiddleware,
        config=config,
        service=service,
        token_cache=token_cache,
        debug=debug,
    )

    @app.get("/ping")
    async def ping():
        return {"status": "ok"}

    @app.api_route("/places", methods=["GET", "POST", "OPTIONS"])
    async def places():
        return {"places": []}

    return app


@pytest.fixture
def client(verify_token, token_cache):
    return TestClient(build_app(verify_token, token_cache))


class TestPassThrough:
    """Requests that are never checked."""

    def test_exempt_path_without_token(self, client, verify_token):
        """Exempt paths pass without a token."""
        response = client.get("/ping")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        verify_token.assert_not_awaited()

    def test_options_without_token(self, client, verify_token):
        """OPTIONS requests pass without a token."""
        response = client.options("/places")

        assert response.status_code == 200
        verify_token.assert_not_awaited()

    def test_dev_mode(self, verify_token, token_cache):
        """Dev mode lets every request through."""
        client = TestClient(build_app(verify_token, token_cache, enable_dev_mode=True))

        response = client.get("/places")

        assert response.status_code == 200
        verify_token.assert_not_awaited()


class TestMissingToken:
    """Requests without a usable token."""

    def test_missing_header_rejected(self, client, verify_token):
        """A missing header is a 401."""
        response = client.get("/places")

        assert response.status_code == 401
        assert response.json() == {"status": 401, "error": "Unauthorized"}
        verify_token.assert_not_awaited()

    def test_empty_header_rejected(self, client, verify_token):
        """An empty header is a 401."""
        response = client.post("/places", headers={"X-Firebase-AppCheck": ""})

        assert response.status_code == 401
        verify_token.assert_not_awaited()

    def test_debug_response_names_reason(self, verify_token, token_cache):
        """Debug responses explain the rejection."""
        client = TestClient(build_app(verify_token, token_cache, debug=True))

        response = client.get("/places")

        assert response.json()["debug_message"] == "Missing App Check token"


class TestVerification:
    """Requests carrying a token."""

    def test_valid_token_reaches_handler_and_is_cached(self, client, verify_token, token_cache):
        """A verified token reaches the route and is cached."""
        response = client.get("/places", headers={"X-Firebase-AppCheck": "good-token"})

        assert response.status_code == 200
        assert response.json() == {"places": []}
        verify_token.assert_awaited_once_with("good-token")
        assert token_cache.contains("good-token")

    def test_cached_token_skips_verification(self, client, verify_token, token_cache):
        """A cached token is not verified again."""
        token_cache.add("cached-token")

        response = client.get("/places", headers={"X-Firebase-AppCheck": "cached-token"})

        assert response.status_code == 200
        verify_token.assert_not_awaited()

    def test_second_request_uses_cache(self, client, verify_token):
        """Repeated requests verify once."""
        headers = {"X-Firebase-AppCheck": "good-token"}
        client.get("/places", headers=headers)
        client.get("/places", headers=headers)

        assert verify_token.await_count == 1

    def test_invalid_token_rejected(self, client, verify_token, token_cache):
        """A rejected token is a 401 and is not cached."""
        verify_token.return_value = False

        response = client.get("/places", headers={"X-Firebase-AppCheck": "bad-token"})

        assert response.status_code == 401
        assert response.json() == {"status": 401, "error": "Unauthorized"}
        assert not token_cache.contains("bad-token")

    def test_verification_crash_returns_500(self, client, verify_token, caplog):
        """An exception during verification is a logged 500."""
        verify_token.side_effect = RuntimeError("verifier exploded")

        with caplog.at_level(logging.ERROR, logger="fastapi_shared.app_check.middleware"):
            response = client.post(
                "/places",
                headers={"X-Firebase-AppCheck": "some-token"},
                json={"name": "Cafe", "password": "hunter22"},
            )

        assert response.status_code == 500
        assert response.json() == {"status": 500, "error": "Internal server error"}

        record = next(r for r in caplog.records if r.levelno == logging.ERROR)
        context = record.payload.context
        assert context.error_type == "RuntimeError"
        assert context.custom_fields["request_body"] == {"name": "Cafe", "password": "***(8)"}

"""
Unit tests for FirebaseAppCheckService.

Covers the single-flight SDK setup, retry after failure and token
verification. The Firebase SDK itself is always patched out.
"""

import asyncio
import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from fastapi_shared.app_check.config import AppCheckConfig
from fastapi_shared.app_check.service import FirebaseAppCheckService


@pytest.fixture
def service(app_check_config):
    return FirebaseAppCheckService(app_check_config)


def counting_initializer(result=None, delay: float = 0.01, fail_times: int = 0):
    """Build a fake ``_initialize`` that counts invocations."""
    state = {"calls": 0}

    async def _initialize():
        state["calls"] += 1
        await asyncio.sleep(delay)
        if state["calls"] <= fail_times:
            raise RuntimeError("firebase unavailable")
        return result if result is not None else MagicMock(name="firebase_app")

    return _initialize, state


class TestSingleFlightSetup:
    """Concurrent callers share one setup."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_setup(self, service):
        """Concurrent get_app callers share a single SDK setup."""
        fake_app = MagicMock(name="firebase_app")
        slow_init, state = counting_initializer(result=fake_app, delay=0.05)

        with patch.object(service, "_initialize", new=slow_init):
            apps = await asyncio.gather(*(service.get_app() for _ in range(10)))

        assert state["calls"] == 1
        assert all(app is fake_app for app in apps)
        assert service.is_initialized is True

    @pytest.mark.asyncio
    async def test_initialized_app_is_reused(self, service):
        """A finished setup is reused by later calls."""
        slow_init, state = counting_initializer()

        with patch.object(service, "_initialize", new=slow_init):
            first = await service.get_app()
            second = await service.get_app()

        assert first is second
        assert state["calls"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_all_see_failure(self, service):
        """Every waiter of a failed setup receives the error."""
        failing_init, state = counting_initializer(fail_times=1)

        with patch.object(service, "_initialize", new=failing_init):
            results = await asyncio.gather(
                *(service.get_app() for _ in range(5)), return_exceptions=True
            )

        assert state["calls"] == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert service.is_initialized is False

    @pytest.mark.asyncio
    async def test_failed_setup_is_retried_on_next_call(self, service):
        """A failed setup is not cached and runs again."""
        fake_app = MagicMock(name="firebase_app")
        flaky_init, state = counting_initializer(result=fake_app, fail_times=1)

        with patch.object(service, "_initialize", new=flaky_init):
            with pytest.raises(RuntimeError):
                await service.get_app()
            app = await service.get_app()

        assert app is fake_app
        assert state["calls"] == 2

    @pytest.mark.asyncio
    async def test_failure_logged_once_per_attempt(self, service, caplog):
        """One failed attempt logs one error regardless of waiters."""
        failing_init, _ = counting_initializer(fail_times=1)

        with caplog.at_level(logging.ERROR, logger="fastapi_shared.app_check.service"):
            with patch.object(service, "_initialize", new=failing_init):
                await asyncio.gather(
                    *(service.get_app() for _ in range(3)), return_exceptions=True
                )

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "Failed to initialize Firebase Admin SDK" in errors[0].getMessage()

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_setup(self, service):
        """Cancelling one waiter leaves the shared setup running."""
        fake_app = MagicMock(name="firebase_app")
        slow_init, state = counting_initializer(result=fake_app, delay=0.05)

        with patch.object(service, "_initialize", new=slow_init):
            waiter = asyncio.ensure_future(service.get_app())
            await asyncio.sleep(0.01)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

            app = await service.get_app()

        assert app is fake_app
        assert state["calls"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_verify_calls_share_one_setup(self, service):
        """Concurrent verify_token calls on a cold service trigger one setup."""
        fake_app = MagicMock(name="firebase_app")
        slow_init, state = counting_initializer(result=fake_app, delay=0.05)

        with patch.object(service, "_initialize", new=slow_init), patch(
            "fastapi_shared.app_check.service.app_check.verify_token",
            return_value={"app_id": "1:123:web:abc"},
        ) as verify:
            results = await asyncio.gather(*(service.verify_token("tok") for _ in range(10)))

        assert results == [True] * 10
        assert state["calls"] == 1
        assert verify.call_count == 10
        assert all(call.args == ("tok", fake_app) for call in verify.call_args_list)


class TestCreateApp:
    """Service account handling during SDK setup."""

    def test_temp_file_removed_after_success(self, service):
        """Service account file is written for the SDK and then deleted."""
        seen = {}

        def fake_certificate(path):
            seen["path"] = path
            with open(path, encoding="utf-8") as handle:
                seen["content"] = handle.read()
            return MagicMock(name="credential")

        with patch(
            "fastapi_shared.app_check.service.credentials.Certificate",
            side_effect=fake_certificate,
        ), patch(
            "fastapi_shared.app_check.service.firebase_admin.initialize_app",
            return_value=MagicMock(name="firebase_app"),
        ) as init_app:
            service._create_app()

        assert seen["content"] == service.config.service_account_json
        assert not os.path.exists(seen["path"])
        options = init_app.call_args.args[1]
        assert options == {"projectId": "test-project"}
        assert init_app.call_args.kwargs["name"].startswith("app-check-test-project-")

    def test_temp_file_removed_after_failure(self, service):
        """Service account file is deleted when the SDK rejects it."""
        seen = {}

        def failing_certificate(path):
            seen["path"] = path
            raise ValueError("bad service account")

        with patch(
            "fastapi_shared.app_check.service.credentials.Certificate",
            side_effect=failing_certificate,
        ):
            with pytest.raises(ValueError):
                service._create_app()

        assert not os.path.exists(seen["path"])


class TestVerifyToken:
    """Token verification outcomes."""

    @pytest.mark.asyncio
    async def test_valid_token(self, service):
        """A token accepted by the SDK verifies as True."""
        fake_app = MagicMock(name="firebase_app")
        service._app = fake_app

        with patch(
            "fastapi_shared.app_check.service.app_check.verify_token",
            return_value={"app_id": "1:123:web:abc"},
        ) as verify:
            assert await service.verify_token("tok") is True

        verify.assert_called_once_with("tok", fake_app)

    @pytest.mark.asyncio
    async def test_rejected_token_returns_false(self, service):
        """A token the SDK rejects verifies as False."""
        service._app = MagicMock(name="firebase_app")

        with patch(
            "fastapi_shared.app_check.service.app_check.verify_token",
            side_effect=ValueError("token expired"),
        ):
            assert await service.verify_token("tok") is False

    @pytest.mark.asyncio
    async def test_setup_failure_returns_false(self, service):
        """Verification reports False when setup fails."""
        failing_init, _ = counting_initializer(fail_times=1)

        with patch.object(service, "_initialize", new=failing_init):
            assert await service.verify_token("tok") is False

    @pytest.mark.asyncio
    async def test_dev_mode_skips_verification(self):
        """Dev mode accepts any token without touching the SDK."""
        service = FirebaseAppCheckService(
            AppCheckConfig(
                firebase_project_id="test-project",
                service_account_json="{}",
                enable_dev_mode=True,
            )
        )

        with patch(
            "fastapi_shared.app_check.service.app_check.verify_token"
        ) as verify:
            assert await service.verify_token("anything") is True

        verify.assert_not_called()
        assert service.is_initialized is False


class TestClose:
    """Teardown of the SDK app."""

    def test_close_deletes_app(self, service):
        """close() deletes the SDK app."""
        fake_app = MagicMock(name="firebase_app")
        service._app = fake_app

        with patch("fastapi_shared.app_check.service.firebase_admin.delete_app") as delete:
            service.close()

        delete.assert_called_once_with(fake_app)
        assert service.is_initialized is False

    def test_close_without_app_is_noop(self, service):
        """close() before setup does nothing."""
        with patch("fastapi_shared.app_check.service.firebase_admin.delete_app") as delete:
            service.close()

        delete.assert_not_called()

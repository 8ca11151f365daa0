"""
Shared pytest fixtures for fastapi_shared tests.
"""

import sys
from pathlib import Path

import pytest

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi_shared.app_check.config import AppCheckConfig
from fastapi_shared.config import get_settings
from tests.helpers import FakeClock, RecordingWrapper


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recording_wrapper():
    return RecordingWrapper()


@pytest.fixture
def app_check_config():
    return AppCheckConfig(
        firebase_project_id="test-project",
        service_account_json='{"type": "service_account", "project_id": "test-project"}',
    )


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start every test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

"""
Pytest configuration and shared fixtures for the test suite.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Fixed evaluation time for staleness checks
NOW = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

DIRECTORY_DATA = {
    "users": [
        {
            "id": "1001",
            "display_name": "Cas",
            "handle": "cas",
            "avatar_url": "https://cdn.example.com/cas.png",
            "scopes": ["guild-1", "guild-2"],
            "nightscout": {
                "url": "https://casscout.herokuapp.com",
                "token": "cas-token",
                "public": {"guild-1": True},
            },
        },
        {
            "id": "1002",
            "display_name": "Dana",
            "handle": "dana_g",
            "avatar_url": "https://cdn.example.com/dana.png",
            "scopes": ["guild-1"],
            "nightscout": {
                "url": "https://dana.example.org/",
                "public": {"guild-1": False},
                "display": ["trend", "simple"],
            },
        },
        {
            "id": "1003",
            "display_name": "Eli",
            "scopes": ["guild-2"],
            "nightscout": {
                "url": "https://eli.example.org",
                "public": {"guild-1": True, "guild-2": True},
            },
        },
        {
            "id": "1004",
            "display_name": "Fin",
            "scopes": ["guild-1"],
        },
    ],
    "channels": {
        "short": ["channel-short"],
    },
}


@pytest.fixture
def settings():
    """Create settings for testing."""
    from nightscout_bot.config import Settings, get_settings

    get_settings.cache_clear()

    return Settings()


@pytest.fixture
def directory():
    """Create a directory with a handful of users."""
    from nightscout_bot.directory import YamlUserDirectory

    return YamlUserDirectory.from_dict(DIRECTORY_DATA)


@pytest.fixture
def preferences():
    """Create channel preferences with one short channel."""
    from nightscout_bot.directory import YamlChannelPreferences

    return YamlChannelPreferences.from_dict(DIRECTORY_DATA)


@pytest.fixture
def cas(directory):
    return directory.get_identity("1001")


@pytest.fixture
def dana(directory):
    return directory.get_identity("1002")


@pytest.fixture
def eli(directory):
    return directory.get_identity("1003")


@pytest.fixture
def fin(directory):
    return directory.get_identity("1004")


@pytest.fixture
def make_context(cas):
    """Factory for request contexts invoked by Cas in guild-1."""
    from nightscout_bot.models import RequestContext

    def factory(**kwargs):
        values = {"invoker": cas, "scope_id": "guild-1", "channel_id": "channel-1"}
        values.update(kwargs)
        return RequestContext(**values)

    return factory


@pytest.fixture
def thresholds():
    from nightscout_bot.models import Thresholds

    return Thresholds(low=70, bottom=80, top=170, high=250)


@pytest.fixture
def make_reading(thresholds):
    """Factory for readings with sensible defaults."""
    from nightscout_bot.models import Delta, Reading

    def factory(**kwargs):
        values = {
            "captured_at": NOW - timedelta(minutes=3),
            "glucose_mmol": 6.7,
            "glucose_mgdl": 120,
            "delta": Delta(mmol=0.3, mgdl=5),
            "delta_is_negative": False,
            "trend_code": 4,
            "insulin_on_board": 1.25,
            "carbs_on_board": 12,
            "thresholds": thresholds,
            "title": "Cas Scout",
        }
        values.update(kwargs)
        return Reading(**values)

    return factory


@pytest.fixture
def site_settings(thresholds):
    from nightscout_bot.models import SiteSettings

    return SiteSettings(title="Cas Scout", thresholds=thresholds)


@pytest.fixture
def entry_series():
    from nightscout_bot.models import Entry, EntrySeries

    return EntrySeries(entries=[
        Entry(mgdl=120, captured_at=NOW - timedelta(minutes=3), trend_code=4),
        Entry(mgdl=115, captured_at=NOW - timedelta(minutes=8), trend_code=4),
    ])


@pytest.fixture
def device_status():
    from nightscout_bot.models import DeviceStatus

    return DeviceStatus(insulin_on_board=1.25, carbs_on_board=12)


@pytest.fixture
def mock_service(site_settings, entry_series, device_status):
    """Create a mock remote service returning a healthy site."""
    from nightscout_bot.nightscout_client import NightscoutClient

    service = MagicMock(spec=NightscoutClient)
    service.fetch_settings.return_value = site_settings
    service.fetch_entries.return_value = entry_series
    service.fetch_device_status.return_value = device_status
    return service


@pytest.fixture
def pipeline(directory, preferences, mock_service, settings):
    """Create a pipeline with mocked fetches and a fixed clock."""
    from nightscout_bot.pipeline import GlucosePipeline

    return GlucosePipeline(directory, preferences, mock_service, settings, clock=lambda: NOW)


@pytest.fixture
def test_client(pipeline, settings):
    """Create a test client with mocked dependencies."""
    from nightscout_bot.config import get_settings
    from nightscout_bot.main import app
    from nightscout_bot.pipeline import get_pipeline, reset_pipeline

    reset_pipeline()

    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_settings] = lambda: settings

    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()

"""Shared test configuration and fixtures."""

import os
from collections.abc import Generator
from datetime import datetime

import pytest
import pytz

from calimport.config.settings import ImportSettings, reset_settings
from calimport.ics.parser import FeedParser
from calimport.timezone import TimezoneService, reset_timezone_service


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep global singletons and CALIMPORT_* variables from leaking between tests."""
    for name in list(os.environ):
        if name.startswith("CALIMPORT_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings()
    reset_timezone_service()
    yield
    reset_settings()
    reset_timezone_service()


@pytest.fixture
def test_settings() -> ImportSettings:
    """Settings with defaults and no .env lookup."""
    return ImportSettings(_env_file=None)


@pytest.fixture
def timezone_service(test_settings: ImportSettings) -> TimezoneService:
    return TimezoneService(test_settings.default_timezone)


@pytest.fixture
def feed_parser(test_settings: ImportSettings, timezone_service: TimezoneService) -> FeedParser:
    return FeedParser(settings=test_settings, timezone_service=timezone_service)


@pytest.fixture
def fixed_now() -> datetime:
    """Reference time well before every fixture event."""
    return pytz.utc.localize(datetime(2020, 1, 1, 12, 0, 0))


def pytest_configure(config: pytest.Config) -> None:
    """Register markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")

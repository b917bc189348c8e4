"""Unit tests for the feed fetcher."""

import httpx
import pytest

from calimport.config.settings import ImportSettings
from calimport.ics.exceptions import ICSFetchError
from calimport.ics.fetcher import FeedFetcher, normalize_feed_url

from tests.fixtures.mock_ics_data import ICSDataFactory


def make_fetcher(settings: ImportSettings, handler) -> FeedFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return FeedFetcher(settings, client=client)


@pytest.mark.unit
class TestNormalizeFeedUrl:
    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("webcal://example.com/feed.ics", "http://example.com/feed.ics"),
            ("WEBCAL://example.com/feed.ics", "http://example.com/feed.ics"),
            ("https://example.com/feed.ics", "https://example.com/feed.ics"),
            ("  http://example.com/feed.ics ", "http://example.com/feed.ics"),
        ],
    )
    def test_normalize(self, address: str, expected: str) -> None:
        assert normalize_feed_url(address) == expected


@pytest.mark.unit
class TestFeedFetcher:
    def test_fetch_returns_text(self, test_settings: ImportSettings) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, text=ICSDataFactory.basic_feed())

        with make_fetcher(test_settings, handler) as fetcher:
            content = fetcher.fetch("webcal://example.com/feed.ics")

        assert content.startswith("BEGIN:VCALENDAR")
        assert seen == ["http://example.com/feed.ics"]

    def test_http_error_status(self, test_settings: ImportSettings) -> None:
        fetcher = make_fetcher(test_settings, lambda request: httpx.Response(404))

        with pytest.raises(ICSFetchError) as exc_info:
            fetcher.fetch("http://example.com/missing.ics")

        assert exc_info.value.status_code == 404

    def test_network_error(self, test_settings: ImportSettings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(test_settings, handler)

        with pytest.raises(ICSFetchError) as exc_info:
            fetcher.fetch("http://example.com/feed.ics")

        assert exc_info.value.status_code is None

    def test_default_client_headers(self, test_settings: ImportSettings) -> None:
        fetcher = FeedFetcher(test_settings)
        try:
            assert fetcher.client.headers["User-Agent"] == test_settings.user_agent
            assert "text/calendar" in fetcher.client.headers["Accept"]
        finally:
            fetcher.close()

    def test_injected_client_is_not_closed(self, test_settings: ImportSettings) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with FeedFetcher(test_settings, client=client):
            pass

        assert not client.is_closed
        client.close()

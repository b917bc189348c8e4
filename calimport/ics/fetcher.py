"""HTTP client for downloading iCalendar feeds."""

import logging
import re
from typing import Any, Optional

import httpx

from ..config.settings import get_settings
from .exceptions import ICSFetchError

logger = logging.getLogger(__name__)

WEBCAL_RE = re.compile(r"^webcal:", re.IGNORECASE)


def normalize_feed_url(url: str) -> str:
    """Rewrite ``webcal:`` addresses to ``http:`` so they can be requested."""
    return WEBCAL_RE.sub("http:", url.strip())


class FeedFetcher:
    """Synchronous HTTP client that resolves a feed address to its text."""

    def __init__(self, settings: Optional[Any] = None, client: Optional[httpx.Client] = None):
        """Initialize feed fetcher.

        Args:
            settings: Application settings; global settings when omitted
            client: Preconfigured httpx client (tests inject a mock transport here)
        """
        self.settings = settings or get_settings()
        self._client = client
        self._owns_client = client is None

    def __enter__(self) -> "FeedFetcher":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.settings.fetch_timeout, connect=10.0),
                follow_redirects=True,
                headers={
                    "User-Agent": self.settings.user_agent,
                    "Accept": "text/calendar, text/plain, */*",
                    "Accept-Charset": "utf-8",
                },
            )
            self._owns_client = True
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            self._client.close()

    def fetch(self, address: str) -> str:
        """Download a feed.

        Args:
            address: http(s) or webcal URL of the feed

        Returns:
            Feed text

        Raises:
            ICSFetchError: On any network or HTTP failure
        """
        url = normalize_feed_url(address)
        logger.debug(f"Fetching feed from {url}")

        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ICSFetchError(f"HTTP {status} fetching {url}", status_code=status) from e
        except httpx.HTTPError as e:
            raise ICSFetchError(f"Failed to fetch {url}: {e}") from e

        logger.info(f"Fetched {len(response.content)} bytes from {url}")
        return response.text

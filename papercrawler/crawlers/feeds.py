"""RSS/Atom feed retrieval and the registry of configured feeds."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional

import feedparser
import httpx

from papercrawler.crawlers.errors import FeedFetchError, FeedParseError
from papercrawler.models.feed import Feed

logger = logging.getLogger(__name__)

TIMEOUT = 30.0
USER_AGENT = "papercrawler/0.1 (+https://github.com/papercrawler)"


def normalize_feed_url(url: str) -> str:
    """Trim and add ``https://`` to URLs given without a scheme."""
    url = url.strip()
    if url and "://" not in url:
        url = f"https://{url}"
    return url


class FeedReader:
    """Fetches feeds over HTTP and parses them with feedparser."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = TIMEOUT,
        contact_email: Optional[str] = None,
    ):
        """Initialize feed reader.

        Args:
            client: Shared HTTP client; one is created per fetch when omitted
            timeout: Request timeout in seconds for self-created clients
            contact_email: Added to the User-Agent so publishers can reach us
        """
        self._client = client
        self.timeout = timeout
        self.user_agent = USER_AGENT
        if contact_email:
            self.user_agent = f"{USER_AGENT[:-1]}; mailto:{contact_email})"

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        response = await client.get(url, headers={"User-Agent": self.user_agent})
        response.raise_for_status()
        return response

    async def fetch(self, url: str) -> feedparser.FeedParserDict:
        """Fetch and parse one feed.

        Args:
            url: Feed URL (scheme optional)

        Returns:
            Parsed feed

        Raises:
            FeedFetchError: On transport failure or a non-2xx response
            FeedParseError: When the body is malformed and yields no entries
        """
        url = normalize_feed_url(url)
        try:
            if self._client is not None:
                response = await self._get(self._client, url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await self._get(client, url)
        except httpx.HTTPStatusError as e:
            raise FeedFetchError(
                f"Feed returned {e.response.status_code}", url=url
            ) from e
        except httpx.HTTPError as e:
            raise FeedFetchError(f"Feed request failed: {e}", url=url) from e

        parsed = feedparser.parse(response.content)
        if parsed.bozo and not parsed.entries:
            reason = parsed.get("bozo_exception") or "malformed document"
            raise FeedParseError(f"Feed could not be parsed: {reason}", url=url)
        return parsed


class FeedRegistry:
    """The configured feeds plus their last known health."""

    def __init__(self, feeds: Optional[Iterable[Feed]] = None):
        self._feeds: dict[str, Feed] = {}
        for feed in feeds or []:
            self._feeds[normalize_feed_url(feed.url)] = replace(
                feed, url=normalize_feed_url(feed.url)
            )

    def __len__(self) -> int:
        return len(self._feeds)

    def list(self) -> list[Feed]:
        """Copies of every feed, in insertion order."""
        return [replace(f) for f in self._feeds.values()]

    def active(self) -> list[Feed]:
        """Feeds that should be fetched (anything not marked inactive)."""
        return [replace(f) for f in self._feeds.values() if f.status != "inactive"]

    def get(self, url: str) -> Optional[Feed]:
        feed = self._feeds.get(normalize_feed_url(url))
        return replace(feed) if feed else None

    def add(self, url: str, name: str) -> Feed:
        """Register a new feed.

        Raises:
            ValueError: If url or name is blank, or the url is already registered
        """
        url = normalize_feed_url(url or "")
        name = (name or "").strip()
        if not url or not name:
            raise ValueError("Feed url and name are required")
        if url in self._feeds:
            raise ValueError(f"Feed already registered: {url}")
        feed = Feed(name=name, url=url)
        self._feeds[url] = feed
        return replace(feed)

    def remove(self, url: str) -> Feed:
        """Unregister a feed.

        Raises:
            KeyError: If the url is not registered
        """
        key = normalize_feed_url(url or "")
        if key not in self._feeds:
            raise KeyError(url)
        return self._feeds.pop(key)

    def record_success(self, url: str) -> None:
        feed = self._feeds.get(normalize_feed_url(url))
        if feed is not None:
            feed.status = "active"
            feed.error_message = None
            feed.last_fetched = datetime.now(timezone.utc)

    def record_failure(self, url: str, message: str) -> None:
        feed = self._feeds.get(normalize_feed_url(url))
        if feed is not None:
            feed.status = "error"
            feed.error_message = message
            logger.warning("Feed %s (%s) failed: %s", feed.name, feed.url, message)

"""RSS/Atom feed source."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.errors import CrawlerError, FeedFetchError, FeedParseError
from papercrawler.crawlers.feeds import FeedReader, FeedRegistry
from papercrawler.crawlers.filters import DEFAULT_RELATED_TERMS, KeywordMatcher, vocabulary_hits
from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.crawlers.throttle import RateLimiter
from papercrawler.database.repository import PaperStore
from papercrawler.models.crawl import SourceConfig
from papercrawler.models.feed import Feed
from papercrawler.models.paper import ABSTRACT_PLACEHOLDER, Paper
from papercrawler.utils.text import (
    clean_abstract,
    clean_markup,
    clean_title,
    extract_doi,
    parse_published,
    short_hash,
    split_list,
)

logger = logging.getLogger(__name__)

RSS_CONFIG = SourceConfig(
    name="RSS",
    url="rss-feed://",
    requests_per_minute=2.0,
    max_pages=10,
)


@dataclass
class FeedItem:
    """One parsed entry together with the feed it came from."""

    feed: Feed
    entry: Mapping[str, Any]


def _unique(values: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        key = value.lower()
        if value and key not in seen:
            seen.add(key)
            result.append(value)
    return result


class RssFeedStrategy(SourceStrategy):
    """Walks the registered feeds; ``max_pages`` caps the number of feeds."""

    priority = 20

    def __init__(
        self,
        config: SourceConfig,
        store: PaperStore,
        feeds: FeedRegistry,
        reader: FeedReader,
        related_terms: Optional[Mapping[str, Sequence[str]]] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        matcher = KeywordMatcher(
            DEFAULT_RELATED_TERMS if related_terms is None else related_terms,
            partial=True,
        )
        super().__init__(config, store, rate_limiter, matcher)
        self.feeds = feeds
        self.reader = reader

    async def _run(self, context: CrawlContext) -> None:
        feeds = self.feeds.active()[: self.config.max_pages]
        self._status.total_pages = len(feeds)
        if not feeds:
            logger.info("RSS: no feeds registered")
            return

        for index, feed in enumerate(feeds, 1):
            if context.should_stop or self._closing:
                break
            if index > 1:
                await self.rate_limiter.wait()
            self._status.current_page = index
            logger.info("RSS: fetching %s (%s)", feed.name, feed.url)
            try:
                parsed = await self.reader.fetch(feed.url)
            except (FeedFetchError, FeedParseError) as e:
                self.feeds.record_failure(feed.url, e.message)
                self._record_error(f"{feed.name}: {e.message}")
                continue
            self.feeds.record_success(feed.url)

            for entry in parsed.entries:
                if context.should_stop or self._closing:
                    break
                try:
                    paper = self.normalize(FeedItem(feed=feed, entry=entry))
                except (CrawlerError, ValueError, TypeError, AttributeError) as e:
                    # feedparser entries are loosely typed
                    logger.debug("RSS %s: could not normalize entry: %s", feed.name, e)
                    continue
                if paper is None:
                    continue
                if await self.accept(paper, context):
                    await self.save(paper, context)

    def normalize(self, raw: FeedItem) -> Optional[Paper]:
        """Map a feed entry to a Paper; entries without title or link/guid are dropped."""
        feed, entry = raw.feed, raw.entry
        title = clean_title(entry.get("title"))
        link = (entry.get("link") or "").strip()
        guid = (entry.get("id") or link).strip()
        if not title or not guid:
            logger.debug("RSS %s: dropping entry without title or link", feed.name)
            return None

        abstract = ""
        for candidate in self._summary_candidates(entry):
            abstract = clean_abstract(candidate, feed.name)
            if abstract:
                break

        entry_categories = [
            clean_markup(tag.get("term")) for tag in entry.get("tags") or [] if tag.get("term")
        ]
        keywords = _unique(
            entry_categories
            + vocabulary_hits(f"{title} {abstract}")
            + ["RSS Feed", f"Source: {feed.name}"]
        )

        metadata: dict[str, Any] = {
            "journal": feed.name,
            "publisher": "RSS",
            "feed_url": feed.url,
        }
        doi = extract_doi(dict(entry))
        if doi:
            metadata["doi"] = doi

        return Paper(
            doi=f"rss-{short_hash(guid)}",
            title=title,
            url=link,
            source=self.name,
            abstract=abstract or ABSTRACT_PLACEHOLDER,
            authors=self._authors(entry) or [f"{feed.name} Publisher"],
            publication_date=parse_published(dict(entry)),
            keywords=keywords,
            categories=_unique(entry_categories + [feed.name]),
            metadata=metadata,
        )

    @staticmethod
    def _summary_candidates(entry: Mapping[str, Any]) -> list[str]:
        candidates = [entry.get("summary") or ""]
        for content in entry.get("content") or []:
            candidates.append(content.get("value") or "")
        candidates.append(entry.get("description") or "")
        return [c for c in candidates if c]

    @staticmethod
    def _authors(entry: Mapping[str, Any]) -> list[str]:
        names = [
            clean_markup(a.get("name")) for a in entry.get("authors") or [] if a.get("name")
        ]
        if names:
            return names
        byline = entry.get("author") or entry.get("dc_creator") or ""
        return split_list(clean_markup(byline))

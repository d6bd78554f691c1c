"""Source strategy contract and the normalization/dedup rules shared by all sources."""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

from papercrawler.crawlers.browser.base import RawItem
from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.errors import CrawlerError
from papercrawler.crawlers.filters import PLAIN_MATCHER, KeywordMatcher, passes_filters
from papercrawler.crawlers.throttle import RateLimiter
from papercrawler.database.repository import DuplicateKeyError, PaperStore
from papercrawler.models.crawl import CrawlPhase, CrawlStatus, SourceConfig
from papercrawler.models.paper import ABSTRACT_PLACEHOLDER, Paper
from papercrawler.utils.text import (
    apply_pattern,
    clean_abstract,
    clean_markup,
    clean_title,
    parse_date_text,
    split_list,
)

logger = logging.getLogger(__name__)


class SourceStrategy(ABC):
    """One pluggable source of papers.

    Lifecycle per run: ``initialize`` -> ``crawl`` -> ``cleanup``. The
    current :class:`CrawlPhase` is exposed as ``phase``.
    """

    priority: ClassVar[int] = 100
    requires_browser: ClassVar[bool] = False

    def __init__(
        self,
        config: SourceConfig,
        store: PaperStore,
        rate_limiter: Optional[RateLimiter] = None,
        matcher: KeywordMatcher = PLAIN_MATCHER,
    ):
        self.config = config
        self.store = store
        self.rate_limiter = rate_limiter or RateLimiter(config.requests_per_minute)
        self.matcher = matcher
        self.phase = CrawlPhase.IDLE
        self._status = CrawlStatus(current_source=config.name)
        self._seen: set[str] = set()
        self._closing = False

    @property
    def name(self) -> str:
        return self.config.name

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def initialize(self, context: CrawlContext) -> None:
        """Reset per-run state and acquire resources."""
        self.phase = CrawlPhase.INITIALIZING
        self._status = CrawlStatus(
            current_source=self.name,
            total_pages=self.config.max_pages,
        )
        self._seen.clear()
        self._closing = False
        try:
            await self._prepare(context)
        except CrawlerError as e:
            self.phase = CrawlPhase.FAILED
            self._status.last_error = str(e)
            raise

    async def _prepare(self, context: CrawlContext) -> None:
        """Hook for subclasses that need resources before crawling."""

    async def crawl(self, context: CrawlContext) -> None:
        """Run the source until exhausted, stopped or the target is met.

        Per-page and per-item failures never escape; they are recorded in
        ``last_error``.
        """
        self.phase = CrawlPhase.RUNNING
        self._status.is_running = True
        logger.info("Crawling %s", self.name)
        try:
            await self._run(context)
            self.phase = (
                CrawlPhase.STOPPED if context.stop_requested or self._closing else CrawlPhase.COMPLETED
            )
        except CrawlerError as e:
            logger.error("%s crawl ended: %s", self.name, e)
            self._status.last_error = str(e)
            self.phase = CrawlPhase.FAILED
        finally:
            self._status.is_running = False
        logger.info(
            "%s finished (%s): %d papers saved",
            self.name,
            self.phase.value,
            self._status.papers_found,
        )

    @abstractmethod
    async def _run(self, context: CrawlContext) -> None: ...

    def get_status(self) -> CrawlStatus:
        return self._status.snapshot()

    async def cleanup(self) -> None:
        self._closing = True
        await self._release()

    async def _release(self) -> None:
        """Hook for subclasses that hold resources."""

    # ── Normalization ─────────────────────────────────────────────────

    def identity_for(self, raw: RawItem) -> Optional[str]:
        """Natural key for a listing item; None drops the item."""
        token = apply_pattern(raw.identifier, self.config.patterns.identifier)
        return token or None

    def metadata_for(self, raw: RawItem, identity: str) -> dict[str, Any]:
        return {"journal": self.name}

    def normalize(self, raw: Any) -> Optional[Paper]:
        """Turn a raw listing item into a Paper.

        Title and identity are mandatory. Authors fall back to
        ``"<source> Publisher"``, the abstract to the placeholder.
        """
        title = clean_title(raw.title)
        if not title:
            logger.debug("%s: dropping item without title", self.name)
            return None
        identity = self.identity_for(raw)
        if not identity:
            logger.debug("%s: dropping item without identifier: %s", self.name, title)
            return None

        authors = split_list(clean_markup(raw.authors)) or [f"{self.name} Publisher"]
        return Paper(
            doi=identity,
            title=title,
            url=raw.url,
            source=self.name,
            abstract=clean_abstract(raw.abstract, self.name) or ABSTRACT_PLACEHOLDER,
            authors=authors,
            publication_date=parse_date_text(raw.date, self.config.patterns.date),
            keywords=split_list(clean_markup(raw.keywords)),
            categories=split_list(clean_markup(raw.categories)),
            metadata=self.metadata_for(raw, identity),
        )

    # ── Dedup, filters, persistence ───────────────────────────────────

    def is_new(self, paper: Paper) -> bool:
        """Not yet seen this run and not already stored."""
        if paper.doi in self._seen:
            return False
        self._seen.add(paper.doi)
        return self.store.find_by_doi(paper.doi) is None

    def matches(self, paper: Paper, context: CrawlContext) -> bool:
        return passes_filters(paper, context.filters, self.matcher)

    async def accept(self, paper: Paper, context: CrawlContext) -> bool:
        return self.is_new(paper) and self.matches(paper, context)

    async def save(self, paper: Paper, context: CrawlContext) -> bool:
        """Persist an accepted paper.

        Returns:
            True if the paper was stored, False if the target was already
            met or the store already knew it
        """
        if context.target_reached:
            return False
        try:
            self.store.save(paper)
        except DuplicateKeyError:
            logger.debug("%s: already stored %s", self.name, paper.doi)
            return False
        self._status.papers_found += 1
        context.record_saved(paper)
        logger.info("[%s] saved: %s", self.name, paper.title[:80])
        return True

    def _record_error(self, message: str) -> None:
        logger.warning("%s: %s", self.name, message)
        self._status.last_error = message

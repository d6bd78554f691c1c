"""Host-facing control surface for crawls, feeds and the saved-paper stream."""

import asyncio
import logging
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Optional

from papercrawler.config import Settings, save_feeds
from papercrawler.crawlers.browser.base import BrowserAdapter
from papercrawler.crawlers.browser.playwright_adapter import PlaywrightAdapter
from papercrawler.crawlers.feeds import FeedReader, FeedRegistry
from papercrawler.crawlers.orchestrator import CrawlOrchestrator
from papercrawler.crawlers.registry import CrawlerRegistry, StrategyDeps, default_registry
from papercrawler.crawlers.throttle import RetryPolicy
from papercrawler.database.repository import PaperRepository, PaperStore
from papercrawler.models.crawl import CrawlRequest, CrawlStatus, SourceConfig
from papercrawler.models.feed import Feed
from papercrawler.models.paper import Paper

logger = logging.getLogger(__name__)

EVENT_BUFFER_SIZE = 200
SUBSCRIBER_QUEUE_SIZE = 1000

_RUN_FINISHED = object()


class CrawlerBusyError(Exception):
    """A crawl is already running."""

    def __init__(self, message: str = "Crawler is already running"):
        super().__init__(message)


class _EventBuffer(logging.Handler):
    """Keeps the most recent crawler log records for the host to display."""

    def __init__(self, maxlen: int = EVENT_BUFFER_SIZE):
        super().__init__(level=logging.INFO)
        self.events: deque[dict[str, Any]] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        self.events.append(
            {
                "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
                "level": record.levelname.lower(),
                "message": record.getMessage(),
            }
        )


class CrawlService:
    """Starts/stops crawls in a background task and exposes their progress.

    Only one crawl runs at a time. Saved papers are published to every
    :meth:`subscribe` iterator.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[PaperStore] = None,
        registry: Optional[CrawlerRegistry] = None,
        feeds: Optional[FeedRegistry] = None,
        adapter_factory: Optional[Callable[[], BrowserAdapter]] = None,
        feed_reader: Optional[FeedReader] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.settings = settings
        self.store = store or PaperRepository(settings.db_path)
        self.registry = registry or default_registry()
        self.feeds = feeds if feeds is not None else FeedRegistry(settings.feeds)
        self.deps = StrategyDeps(
            store=self.store,
            feeds=self.feeds,
            feed_reader=feed_reader or FeedReader(contact_email=settings.contact_email),
            adapter_factory=adapter_factory or (lambda: PlaywrightAdapter(settings.browser)),
        )
        self.retry_policy = retry_policy or settings.retry_policy()
        self._orchestrator: Optional[CrawlOrchestrator] = None
        self._task: Optional[asyncio.Task] = None
        self._subscribers: set[asyncio.Queue] = set()
        self._events = _EventBuffer()
        package_logger = logging.getLogger("papercrawler")
        if package_logger.level == logging.NOTSET:
            package_logger.setLevel(logging.INFO)
        package_logger.addHandler(self._events)

    def close(self) -> None:
        """Detach the event buffer from the package logger."""
        logging.getLogger("papercrawler").removeHandler(self._events)

    # ── Crawl control ─────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def with_defaults(self, request: CrawlRequest) -> CrawlRequest:
        """Fill unset request fields from the configured defaults."""
        return replace(
            request,
            max_papers=request.max_papers or self.settings.max_papers,
            sources=request.sources or list(self.settings.default_sources),
            keywords=request.keywords or list(self.settings.default_keywords),
            categories=request.categories or list(self.settings.default_categories),
            exclude_keywords=request.exclude_keywords or list(self.settings.exclude_keywords),
            min_year=request.min_year if request.min_year is not None else self.settings.min_year,
        )

    def source_configs(self) -> dict[str, SourceConfig]:
        """Registered default configs with the per-source overrides applied."""
        configs = {}
        for name in self.registry.names():
            config = self.registry.default_config(name)
            overrides = self.settings.source_overrides.get(name.lower(), {})
            configs[name] = config.with_overrides(**overrides)
        return configs

    async def start(self, request: CrawlRequest) -> CrawlStatus:
        """Start a crawl in the background.

        Raises:
            CrawlerBusyError: If a crawl is already running
        """
        if self.is_running:
            raise CrawlerBusyError()
        request = self.with_defaults(request)
        self._orchestrator = CrawlOrchestrator(self.registry, self.deps, self.retry_policy)
        logger.info(
            "Starting crawl: sources=%s keywords=%s target=%d",
            request.sources or self.registry.names(),
            request.keywords,
            request.max_papers,
        )
        self._task = asyncio.create_task(self._run(self._orchestrator, request))
        return self.get_status()

    async def _run(self, orchestrator: CrawlOrchestrator, request: CrawlRequest) -> None:
        try:
            await orchestrator.run(request, self.source_configs(), on_saved=self._publish)
        except asyncio.CancelledError:
            logger.info("Crawl task cancelled")
            raise
        except Exception:
            logger.exception("Crawl failed")
        finally:
            self._publish(_RUN_FINISHED)

    async def stop(self) -> CrawlStatus:
        """Request a cooperative stop; the run ends at the next page/item boundary."""
        if self._orchestrator is not None and self.is_running:
            self._orchestrator.request_stop()
        return self.get_status()

    async def wait(self) -> CrawlStatus:
        """Wait for the active crawl (if any) to finish."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.get_status()

    def get_status(self) -> CrawlStatus:
        if self._orchestrator is None:
            return CrawlStatus()
        status = self._orchestrator.get_status()
        status.is_running = self.is_running
        return status

    def recent_events(self, limit: int = 50) -> list[dict[str, Any]]:
        return list(self._events.events)[-limit:]

    # ── Saved-paper stream ────────────────────────────────────────────

    def _publish(self, item: object) -> None:
        for queue in list(self._subscribers):
            if queue.full():
                # a stalled subscriber only keeps the most recent papers
                queue.get_nowait()
            queue.put_nowait(item)

    async def subscribe(self, until_finished: bool = False) -> AsyncIterator[Paper]:
        """Yield every paper saved from now on.

        Args:
            until_finished: End once the current run is over and every paper
                it saved has been yielded, instead of following later runs
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is _RUN_FINISHED:
                    if until_finished:
                        return
                    continue
                yield item
        finally:
            self._subscribers.discard(queue)

    # ── Feeds ─────────────────────────────────────────────────────────

    def list_feeds(self) -> list[Feed]:
        return self.feeds.list()

    def add_feed(self, url: str, name: str) -> Feed:
        """Register and persist a feed.

        Raises:
            ValueError: On blank input or an already registered url
        """
        feed = self.feeds.add(url, name)
        save_feeds(self.settings.feeds_path, self.feeds.list())
        logger.info("Added feed %s (%s)", feed.name, feed.url)
        return feed

    def remove_feed(self, url: str) -> Feed:
        """Unregister and persist.

        Raises:
            KeyError: If the url is not registered
        """
        feed = self.feeds.remove(url)
        save_feeds(self.settings.feeds_path, self.feeds.list())
        logger.info("Removed feed %s (%s)", feed.name, feed.url)
        return feed

    # ── Store ─────────────────────────────────────────────────────────

    def reset_store(self) -> int:
        """Delete every stored paper.

        Raises:
            CrawlerBusyError: While a crawl is running
        """
        if self.is_running:
            raise CrawlerBusyError("Cannot reset the store while a crawl is running")
        deleted = self.store.clear()
        logger.info("Deleted %d papers", deleted)
        return deleted

"""Runs the requested sources one after another for a single crawl."""

import logging
from typing import Callable, Mapping, Optional

from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.errors import BrowserEnvironmentError, CrawlerError
from papercrawler.crawlers.registry import CrawlerRegistry, StrategyDeps
from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.crawlers.throttle import RetryPolicy
from papercrawler.models.crawl import DEFAULT_MAX_PAPERS, CrawlRequest, CrawlStatus, SourceConfig
from papercrawler.models.paper import Paper

logger = logging.getLogger(__name__)


class CrawlOrchestrator:
    """Sequential, priority-ordered execution of source strategies."""

    def __init__(
        self,
        registry: CrawlerRegistry,
        deps: StrategyDeps,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.registry = registry
        self.deps = deps
        self.retry_policy = retry_policy or RetryPolicy()
        self._context: Optional[CrawlContext] = None
        self._active: Optional[SourceStrategy] = None
        self._running = False
        self._stop_pending = False
        self._last_error = ""

    def _resolve(
        self,
        names: list[str],
        source_configs: Mapping[str, SourceConfig],
    ) -> list[SourceStrategy]:
        configs = {k.lower(): v for k, v in source_configs.items()}
        strategies = []
        for name in names:
            strategy = self.registry.create(name, self.deps, configs.get(name.lower()))
            if strategy is None:
                self._last_error = f"Unknown source: {name}"
                continue
            strategies.append(strategy)
        # sorted() is stable, so equal priorities keep request order
        return sorted(strategies, key=lambda s: s.priority)

    async def run(
        self,
        request: CrawlRequest,
        source_configs: Optional[Mapping[str, SourceConfig]] = None,
        on_saved: Optional[Callable[[Paper], None]] = None,
    ) -> CrawlStatus:
        """Crawl every requested source until the target is met or a stop is requested.

        Args:
            request: Per-run parameters; an empty ``sources`` list means all registered
            source_configs: Per-source config overrides keyed by source name
            on_saved: Called with each paper right after it is stored

        Returns:
            Final aggregate status
        """
        self._running = True
        self._last_error = ""
        self._context = CrawlContext(
            store=self.deps.store,
            filters=request.filters(),
            target=request.max_papers or DEFAULT_MAX_PAPERS,
            retry_policy=self.retry_policy,
            on_saved=on_saved,
            stop_requested=self._stop_pending,
        )
        context = self._context
        try:
            strategies = self._resolve(request.sources or self.registry.names(), source_configs or {})
            browser_missing = False
            for strategy in strategies:
                if context.should_stop:
                    break
                if strategy.requires_browser and browser_missing:
                    logger.warning("Skipping %s: no browser available", strategy.name)
                    continue
                self._active = strategy
                try:
                    await strategy.initialize(context)
                    await strategy.crawl(context)
                except BrowserEnvironmentError as e:
                    browser_missing = True
                    logger.error("Source %s failed: %s", strategy.name, e)
                    self._last_error = f"{strategy.name}: {e}"
                except CrawlerError as e:
                    logger.error("Source %s failed: %s", strategy.name, e)
                    self._last_error = f"{strategy.name}: {e}"
                finally:
                    await strategy.cleanup()
                last_error = strategy.get_status().last_error
                if last_error:
                    self._last_error = last_error
        finally:
            self._running = False
            self._stop_pending = False
        logger.info("Crawl finished: %d papers saved", context.saved)
        return self.get_status()

    def request_stop(self) -> None:
        """Stop the current run, or the next one if it has not started yet."""
        logger.info("Stop requested")
        self._stop_pending = True
        if self._context is not None:
            self._context.request_stop()

    def get_status(self) -> CrawlStatus:
        """Aggregate snapshot across the sources of the current/last run."""
        status = CrawlStatus(
            is_running=self._running,
            papers_found=self._context.saved if self._context else 0,
            last_error=self._last_error,
        )
        if self._active is not None:
            active = self._active.get_status()
            status.current_source = active.current_source
            status.current_page = active.current_page
            status.total_pages = active.total_pages
            if active.last_error:
                status.last_error = active.last_error
        return status

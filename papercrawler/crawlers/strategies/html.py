"""Page loop shared by sources rendered in a real browser."""

import logging
import re
from typing import Callable, Optional
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from papercrawler.crawlers.browser.base import BrowserAdapter, BrowserSetupOptions, RawItem
from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.errors import CrawlerError, SessionLostError
from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.crawlers.throttle import RateLimiter
from papercrawler.database.repository import PaperStore
from papercrawler.models.crawl import CrawlFilters, SourceConfig
from papercrawler.models.paper import ABSTRACT_PLACEHOLDER, Paper
from papercrawler.utils.text import clean_abstract, normalize_doi

logger = logging.getLogger(__name__)

MAX_EMPTY_PAGES = 3
DEFAULT_SEARCH_TERMS = "synthetic biology OR machine learning OR bioinformatics"


class HtmlSourceStrategy(SourceStrategy):
    """Search-result listing crawled page by page through a BrowserAdapter."""

    requires_browser = True

    def __init__(
        self,
        config: SourceConfig,
        store: PaperStore,
        adapter_factory: Callable[[], BrowserAdapter],
        rate_limiter: Optional[RateLimiter] = None,
    ):
        if config.selectors is None:
            raise ValueError(f"{config.name}: HTML sources need a selector map")
        super().__init__(config, store, rate_limiter)
        self._adapter_factory = adapter_factory
        self._adapter: Optional[BrowserAdapter] = None
        self._reconnects = 0

    # ── Session ───────────────────────────────────────────────────────

    def setup_options(self) -> BrowserSetupOptions:
        return BrowserSetupOptions(
            extra_headers=dict(self.config.extra_headers),
            allowed_asset_hosts=self.config.allowed_asset_hosts,
        )

    async def _prepare(self, context: CrawlContext) -> None:
        self._reconnects = 0
        self._adapter = self._adapter_factory()
        await self._adapter.initialize()
        await self._adapter.setup(self.setup_options())

    async def _release(self) -> None:
        if self._adapter is not None:
            await self._adapter.cleanup()
            self._adapter = None

    @property
    def adapter(self) -> BrowserAdapter:
        if self._adapter is None:
            raise SessionLostError("Browser session not initialized", source=self.name)
        return self._adapter

    async def _ensure_session(self, context: CrawlContext) -> None:
        """Reopen a dead browser session, within the reconnect budget."""
        if await self.adapter.is_connected():
            return
        if self._reconnects >= context.max_reconnects:
            raise SessionLostError(
                f"Browser session lost after {self._reconnects} reconnect attempts",
                source=self.name,
            )
        self._reconnects += 1
        logger.warning(
            "%s: browser session lost, reconnecting (%d/%d)",
            self.name,
            self._reconnects,
            context.max_reconnects,
        )
        await self.adapter.cleanup()
        await self.adapter.initialize()
        await self.adapter.setup(self.setup_options())

    # ── Page loop ─────────────────────────────────────────────────────

    def start_url(self, filters: CrawlFilters) -> str:
        """Seed URL with ``{terms}`` filled from the filter keywords."""
        terms = " OR ".join(filters.keywords) if filters.keywords else DEFAULT_SEARCH_TERMS
        return self.config.url.replace("{terms}", quote(terms, safe=""))

    async def _load_page(self, url: str, context: CrawlContext) -> list[RawItem]:
        selectors = self.config.selectors

        async def attempt() -> list[RawItem]:
            await self._ensure_session(context)
            await self.adapter.navigate(url)
            return await self.adapter.extract(selectors)

        return await context.retry_policy.run(attempt)

    async def _next_page_url(self, current: str) -> Optional[str]:
        selector = self.config.selectors.next_page
        if not selector:
            return None
        try:
            next_url = await self.adapter.get_next_page_url(selector)
        except CrawlerError as e:
            self._record_error(f"Next-page lookup failed: {e}")
            return None
        if not next_url or next_url == current:
            return None
        return next_url

    def _numbered_page_url(self, url: str, page: int) -> Optional[str]:
        """*url* with the page query parameter set to *page*, if the source has one."""
        param = self.config.page_param
        if not param:
            return None
        parts = urlsplit(url)
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param]
        query.append((param, str(page)))
        return urlunsplit(parts._replace(query=urlencode(query)))

    async def _run(self, context: CrawlContext) -> None:
        url: Optional[str] = self.start_url(context.filters)
        page = 1
        empty_pages = 0

        while url and not context.should_stop and not self._closing:
            self._status.current_page = page
            logger.info("%s: page %d %s", self.name, page, url)
            try:
                items = await self._load_page(url, context)
            except SessionLostError:
                raise
            except CrawlerError as e:
                self._record_error(f"Page {page} failed: {e}")
                items = None

            if items is not None:
                usable = await self._process_items(items, context)
                empty_pages = 0 if usable else empty_pages + 1
                if empty_pages >= MAX_EMPTY_PAGES:
                    logger.info(
                        "%s: %d consecutive pages without items, stopping",
                        self.name,
                        empty_pages,
                    )
                    break

            if context.should_stop or page >= self.config.max_pages:
                break
            next_url = await self._next_page_url(url)
            if next_url is None and items is None:
                # the browser is still on the previous page, whose link leads back here
                next_url = self._numbered_page_url(url, page + 1)
            url = next_url
            if url:
                page += 1
                await self.rate_limiter.wait()

    async def _process_items(self, items: list[RawItem], context: CrawlContext) -> int:
        """Normalize, backfill, filter and save one page of items.

        Returns:
            Number of usable (normalizable) items on the page
        """
        usable = 0
        detail_fetches = 0
        for raw in items:
            if context.should_stop or self._closing:
                break
            try:
                paper = self.normalize(raw)
            except (CrawlerError, ValueError) as e:
                logger.debug("%s: could not normalize item: %s", self.name, e)
                continue
            if paper is None:
                continue
            usable += 1
            if not self.is_new(paper):
                continue
            if self.needs_detail(paper) and detail_fetches < self.config.detail_fetch_limit:
                detail_fetches += 1
                await self.backfill(paper)
            if not self.matches(paper, context):
                continue
            await self.save(paper, context)
        return usable

    # ── Detail backfill ───────────────────────────────────────────────

    def needs_detail(self, paper: Paper) -> bool:
        return (
            self.config.detail is not None
            and bool(paper.url)
            and paper.abstract == ABSTRACT_PLACEHOLDER
        )

    async def backfill(self, paper: Paper) -> None:
        """Fill abstract and real DOI from the item's own page.

        Failures leave the paper as it was.
        """
        try:
            detail = await self.adapter.fetch_detail(paper.url, self.config.detail)
        except CrawlerError as e:
            logger.warning("%s: detail fetch failed for %s: %s", self.name, paper.url, e)
            return

        abstract = clean_abstract(detail.abstract, self.name)
        if abstract:
            paper.abstract = abstract

        pattern = re.compile(self.config.patterns.detail_doi)
        for candidate in [detail.identifier_text, *detail.links]:
            match = pattern.search(candidate or "")
            if match:
                paper.metadata["doi"] = normalize_doi(match.group(1).rstrip(".,;"))
                break

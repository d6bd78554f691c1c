"""In-memory stand-ins for the browser and sources used across tests."""

from typing import Callable, Optional, Union

from papercrawler.crawlers.browser.base import (
    BrowserAdapter,
    BrowserSetupOptions,
    DetailPage,
    RawItem,
)
from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.errors import BrowserEnvironmentError, NavigationError
from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.models.crawl import DetailSelectors, SelectorMap, SourceConfig

PageMap = Union[
    dict[str, tuple[list[RawItem], Optional[str]]],
    Callable[[str], tuple[list[RawItem], Optional[str]]],
]

TEST_SELECTORS = SelectorMap(
    article_container="article",
    title="h2",
    url="h2 a",
    identifier=".id",
    authors=".authors",
    abstract=".abstract",
    next_page="a.next",
)


def html_config(name: str = "A", **changes) -> SourceConfig:
    config = SourceConfig(
        name=name,
        url="https://a.test/search?q={terms}",
        selectors=TEST_SELECTORS,
        requests_per_minute=0,
        max_pages=10,
    )
    return config.with_overrides(**changes)


def item(ident: str, title: str, abstract: str = "", authors: str = "") -> RawItem:
    return RawItem(
        title=title,
        url=f"https://a.test/paper/{ident}",
        identifier=ident,
        authors=authors,
        abstract=abstract,
    )


def matching_item(ident: str) -> RawItem:
    return item(
        ident,
        f"Bioinformatics pipeline {ident}",
        "We describe a bioinformatics workflow for assembling microbial genomes.",
        "Ada Lovelace, Alan Turing",
    )


def other_item(ident: str) -> RawItem:
    return item(
        ident,
        f"Pasta recipes {ident}",
        "A survey of kitchen techniques for cooking dried pasta at home.",
    )


class StubAdapter(BrowserAdapter):
    """Serves canned listing pages keyed by URL."""

    def __init__(
        self,
        pages: PageMap,
        details: Optional[dict[str, DetailPage]] = None,
        connected: bool = True,
        fail_urls: tuple[str, ...] = (),
        fail_initialize: bool = False,
    ):
        self.pages = pages
        self.details = details or {}
        self.connected = connected
        self.fail_urls = fail_urls
        self.fail_initialize = fail_initialize
        self.current: Optional[str] = None
        self.navigations: list[str] = []
        self.detail_calls: list[str] = []
        self.initialize_calls = 0
        self.setup_calls = 0
        self.cleanup_calls = 0

    def _page(self, url: Optional[str]) -> tuple[list[RawItem], Optional[str]]:
        if url is None:
            return [], None
        if callable(self.pages):
            return self.pages(url)
        return self.pages.get(url, ([], None))

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.fail_initialize:
            raise BrowserEnvironmentError("no browser available")

    async def setup(self, options: BrowserSetupOptions) -> None:
        self.setup_calls += 1

    async def navigate(self, url: str, timeout: Optional[float] = None) -> None:
        if url in self.fail_urls:
            raise NavigationError("connection reset", url=url)
        self.current = url
        self.navigations.append(url)

    async def extract(self, selectors: SelectorMap) -> list[RawItem]:
        return list(self._page(self.current)[0])

    async def wait_for_selector(self, selector, timeout=None, visible=False) -> None:
        return None

    async def evaluate_selector(self, selector: str) -> bool:
        return bool(self._page(self.current)[0])

    async def get_next_page_url(self, selector: str) -> Optional[str]:
        return self._page(self.current)[1]

    async def fetch_detail(self, url: str, detail: DetailSelectors) -> DetailPage:
        self.detail_calls.append(url)
        return self.details.get(url, DetailPage())

    async def is_connected(self) -> bool:
        return self.connected

    async def cleanup(self) -> None:
        self.cleanup_calls += 1


class RecordingStrategy(SourceStrategy):
    """Source that saves nothing and records when it ran."""

    def __init__(self, config: SourceConfig, store, log: list[str], priority: int = 100):
        super().__init__(config, store)
        self.priority = priority
        self.log = log

    async def _run(self, context: CrawlContext) -> None:
        self.log.append(self.name)

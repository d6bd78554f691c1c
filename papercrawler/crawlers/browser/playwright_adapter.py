"""Playwright (Chromium) implementation of the browser adapter."""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from papercrawler.crawlers.browser.base import (
    BrowserAdapter,
    BrowserSetupOptions,
    DetailPage,
    RawItem,
)
from papercrawler.crawlers.errors import (
    BrowserEnvironmentError,
    ExtractionError,
    NavigationError,
    NavigationTimeoutError,
)
from papercrawler.models.crawl import DetailSelectors, SelectorMap

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

ALWAYS_ALLOWED = frozenset({"document", "script", "xhr", "fetch"})
ASSET_TYPES = frozenset({"stylesheet", "image"})

# Walks every article container and reads each selector's text. Multi-valued
# fields (keywords, categories) are joined with ", ".
_EXTRACT_SCRIPT = """
(sel) => {
  const text = (root, s) => {
    if (!s) return "";
    const el = root.querySelector(s);
    return el ? (el.textContent || "").trim() : "";
  };
  const many = (root, s) => {
    if (!s) return "";
    return Array.from(root.querySelectorAll(s))
      .map((el) => (el.textContent || "").trim())
      .filter((t) => t.length > 0)
      .join(", ");
  };
  const href = (root, s) => {
    if (!s) return "";
    const el = root.querySelector(s);
    if (!el) return "";
    return el.href || el.getAttribute("href") || "";
  };
  return Array.from(document.querySelectorAll(sel.article_container)).map((item) => ({
    title: text(item, sel.title),
    url: href(item, sel.url),
    identifier: text(item, sel.identifier),
    authors: text(item, sel.authors),
    abstract: text(item, sel.abstract),
    date: text(item, sel.date),
    keywords: many(item, sel.keywords),
    categories: many(item, sel.categories),
  }));
}
"""

_DETAIL_SCRIPT = """
(sel) => {
  const abstract = Array.from(document.querySelectorAll(sel.abstract))
    .map((el) => (el.textContent || "").trim())
    .filter((t) => t.length > 0)
    .join(" ");
  let identifier = "";
  const links = [];
  if (sel.identifier) {
    for (const el of document.querySelectorAll(sel.identifier)) {
      if (!identifier) identifier = (el.textContent || "").trim();
      if (el.href) links.push(el.href);
    }
  }
  return { abstract, identifier, links };
}
"""


@dataclass
class BrowserSettings:
    """Browser launch and timing configuration (seconds)."""

    headless: bool = True
    navigation_timeout: float = 60.0
    selector_timeout: float = 10.0
    settle_delay: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT


class PlaywrightAdapter(BrowserAdapter):
    """Chromium session driven through ``playwright.async_api``.

    Features:
    - Resource policy via route interception
    - Network-idle navigation followed by a fixed settle delay
    - Detail pages opened in a secondary tab and always closed
    """

    def __init__(self, settings: Optional[BrowserSettings] = None):
        self.settings = settings or BrowserSettings()
        self._playwright: "Optional[Playwright]" = None
        self._browser: "Optional[Browser]" = None
        self._context: "Optional[BrowserContext]" = None
        self._page: "Optional[Page]" = None
        self._options = BrowserSetupOptions()

    async def initialize(self) -> None:
        if self._browser is not None:
            return
        try:
            logger.debug("Initializing Playwright browser")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )
        except PlaywrightError as e:
            await self.cleanup()
            raise BrowserEnvironmentError(f"Browser launch failed: {e}") from e
        logger.info("Playwright browser started")

    async def setup(self, options: BrowserSetupOptions) -> None:
        if self._browser is None:
            raise BrowserEnvironmentError("Browser not initialized")
        self._options = options
        try:
            self._context = await self._browser.new_context(
                user_agent=self.settings.user_agent,
                viewport={"width": options.viewport_width, "height": options.viewport_height},
                locale="en-US",
                extra_http_headers=options.extra_headers or None,
            )
            self._context.set_default_timeout(options.default_timeout * 1000)
            await self._context.route("**/*", self._apply_resource_policy)
            self._page = await self._context.new_page()
        except PlaywrightError as e:
            raise BrowserEnvironmentError(f"Page setup failed: {e}") from e

    async def _apply_resource_policy(self, route: "Route") -> None:
        request = route.request
        resource_type = request.resource_type
        if resource_type in ALWAYS_ALLOWED:
            await route.continue_()
            return
        if resource_type in ASSET_TYPES:
            host = urlparse(request.url).hostname or ""
            if host in self._options.allowed_asset_hosts:
                await route.continue_()
                return
        await route.abort()

    def _require_page(self) -> "Page":
        if self._page is None or self._page.is_closed():
            raise NavigationError("No open page")
        return self._page

    async def navigate(self, url: str, timeout: Optional[float] = None) -> None:
        page = self._require_page()
        timeout_ms = (timeout or self.settings.navigation_timeout) * 1000
        logger.debug("Navigating to %s", url)
        try:
            await page.goto(url, timeout=timeout_ms, wait_until="networkidle")
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(f"Timed out loading page: {e}", url=url) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed: {e}", url=url) from e
        if self.settings.settle_delay > 0:
            await asyncio.sleep(self.settings.settle_delay)

    async def extract(self, selectors: SelectorMap) -> list[RawItem]:
        page = self._require_page()
        try:
            rows = await page.evaluate(_EXTRACT_SCRIPT, asdict(selectors))
        except PlaywrightError as e:
            raise ExtractionError(f"Selector evaluation failed: {e}", url=page.url) from e
        items: list[RawItem] = []
        for row in rows or []:
            if isinstance(row, dict):
                items.append(RawItem.from_mapping(row))
        return items

    async def wait_for_selector(
        self, selector: str, timeout: Optional[float] = None, visible: bool = False
    ) -> None:
        page = self._require_page()
        timeout_ms = (timeout or self.settings.selector_timeout) * 1000
        try:
            await page.wait_for_selector(
                selector, timeout=timeout_ms, state="visible" if visible else "attached"
            )
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Selector not found: {selector}", url=page.url
            ) from e

    async def evaluate_selector(self, selector: str) -> bool:
        page = self._require_page()
        try:
            return await page.query_selector(selector) is not None
        except PlaywrightError as e:
            raise ExtractionError(f"Invalid selector {selector}: {e}", url=page.url) from e

    async def get_next_page_url(self, selector: str) -> Optional[str]:
        if not selector:
            return None
        page = self._require_page()
        try:
            link = await page.query_selector(selector)
            if link is None:
                return None
            href = await link.evaluate("(el) => el.href || el.getAttribute('href') || ''")
        except PlaywrightError as e:
            raise ExtractionError(f"Next-page lookup failed: {e}", url=page.url) from e
        return href or None

    async def fetch_detail(self, url: str, detail: DetailSelectors) -> DetailPage:
        if self._context is None:
            raise NavigationError("No browser context", url=url)
        page = await self._context.new_page()
        try:
            await page.goto(
                url,
                timeout=self.settings.navigation_timeout * 1000,
                wait_until="domcontentloaded",
            )
            await page.wait_for_selector(
                detail.container, timeout=self.settings.selector_timeout * 1000
            )
            data = await page.evaluate(
                _DETAIL_SCRIPT,
                {"abstract": detail.abstract, "identifier": detail.identifier},
            )
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(f"Detail page timed out: {e}", url=url) from e
        except PlaywrightError as e:
            raise NavigationError(f"Detail page failed: {e}", url=url) from e
        finally:
            try:
                await page.close()
            except PlaywrightError:
                logger.debug("Detail page already closed: %s", url)
        return DetailPage(
            abstract=str(data.get("abstract") or ""),
            identifier_text=str(data.get("identifier") or ""),
            links=[str(link) for link in data.get("links") or []],
        )

    async def is_connected(self) -> bool:
        return (
            self._browser is not None
            and self._browser.is_connected()
            and self._page is not None
            and not self._page.is_closed()
        )

    async def cleanup(self) -> None:
        """Clean up browser resources."""
        for name in ("_page", "_context", "_browser"):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                await resource.close()
            except PlaywrightError as e:
                logger.debug("Ignoring error while closing %s: %s", name, e)
            setattr(self, name, None)

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logger.debug("Ignoring error while stopping Playwright: %s", e)
            self._playwright = None
            logger.debug("Playwright browser closed")

    async def __aenter__(self) -> "PlaywrightAdapter":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cleanup()

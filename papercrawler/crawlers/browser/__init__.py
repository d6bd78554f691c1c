"""Browser automation adapters."""

from papercrawler.crawlers.browser.base import (
    BrowserAdapter,
    BrowserSetupOptions,
    DetailPage,
    RawItem,
)

__all__ = ["BrowserAdapter", "BrowserSetupOptions", "DetailPage", "RawItem"]

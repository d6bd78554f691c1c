"""Custom exceptions for the acquisition pipeline."""

from typing import Optional


class CrawlerError(Exception):
    """Base crawler exception."""

    def __init__(self, message: str, url: Optional[str] = None, source: Optional[str] = None):
        self.message = message
        self.url = url
        self.source = source
        super().__init__(message)


class BrowserEnvironmentError(CrawlerError):
    """The browser could not be launched or a page could not be opened."""

    pass


class NavigationError(CrawlerError):
    """A page load failed."""

    pass


class NavigationTimeoutError(NavigationError):
    """A page load or selector wait exceeded its timeout."""

    pass


class ExtractionError(CrawlerError):
    """The selector map could not be evaluated against the page."""

    pass


class FeedFetchError(CrawlerError):
    """An RSS/Atom feed could not be retrieved."""

    pass


class FeedParseError(CrawlerError):
    """An RSS/Atom feed was retrieved but is not a usable document."""

    pass


class SessionLostError(CrawlerError):
    """The browser session died and the reconnect budget is exhausted."""

    pass

"""Data models."""

from papercrawler.models.crawl import (
    CrawlFilters,
    CrawlPhase,
    CrawlRequest,
    CrawlStatus,
    DateRange,
    DetailSelectors,
    ExtractionPatterns,
    SelectorMap,
    SourceConfig,
)
from papercrawler.models.feed import Feed
from papercrawler.models.paper import ABSTRACT_PLACEHOLDER, Paper

__all__ = [
    "ABSTRACT_PLACEHOLDER",
    "CrawlFilters",
    "CrawlPhase",
    "CrawlRequest",
    "CrawlStatus",
    "DateRange",
    "DetailSelectors",
    "ExtractionPatterns",
    "Feed",
    "Paper",
    "SelectorMap",
    "SourceConfig",
]

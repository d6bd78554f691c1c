"""Crawl configuration and status data models."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional

DEFAULT_MAX_PAPERS = 50


class CrawlPhase(str, Enum):
    """Lifecycle of one strategy run."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class CrawlStatus:
    """Mutable per-strategy progress snapshot.

    Readers always get a copy via :meth:`snapshot`.
    """

    is_running: bool = False
    current_source: str = ""
    current_page: int = 1
    papers_found: int = 0
    last_error: str = ""
    total_pages: int = 0

    def snapshot(self) -> "CrawlStatus":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "current_source": self.current_source,
            "current_page": self.current_page,
            "papers_found": self.papers_found,
            "last_error": self.last_error,
            "total_pages": self.total_pages,
        }


# ---------------------------------------------------------------------------
# Source configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectorMap:
    """CSS selectors for one search-result listing."""

    article_container: str
    title: str
    url: str
    identifier: str
    authors: str = ""
    abstract: str = ""
    date: str = ""
    keywords: str = ""
    categories: str = ""
    next_page: str = ""


@dataclass(frozen=True)
class DetailSelectors:
    """Selectors used on an item's own page during a detail fetch."""

    container: str
    abstract: str
    identifier: str = ""


@dataclass(frozen=True)
class ExtractionPatterns:
    """Regular expressions applied to free text.

    Each pattern's first capture group is the extracted token.
    """

    identifier: Optional[str] = None
    date: Optional[str] = None
    detail_doi: str = r"(10\.\d{4,9}/[^\s\"<>]+)"


@dataclass(frozen=True)
class SourceConfig:
    """Immutable per-run configuration for one source.

    ``url`` may contain a ``{terms}`` placeholder that is filled with the
    encoded search terms. ``max_pages`` caps pages for HTML sources and
    feeds for the RSS source.

    ``page_param`` names the query parameter that selects a result page; it
    is only used to step past a page that failed to load.
    """

    name: str
    url: str
    selectors: Optional[SelectorMap] = None
    detail: Optional[DetailSelectors] = None
    patterns: ExtractionPatterns = field(default_factory=ExtractionPatterns)
    requests_per_minute: float = 2.0
    max_pages: int = 10
    extra_headers: dict[str, str] = field(default_factory=dict)
    allowed_asset_hosts: tuple[str, ...] = ()
    detail_fetch_limit: int = 5
    page_param: Optional[str] = None

    def with_overrides(self, **changes: Any) -> "SourceConfig":
        """Return a copy with the given (non-None) fields replaced."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes) if changes else self


# ---------------------------------------------------------------------------
# Filters & request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateRange:
    """Inclusive publication-date bounds. Either side may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, value: date) -> bool:
        if self.start and value < self.start:
            return False
        if self.end and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class CrawlFilters:
    """Inclusion rules applied to every candidate before it is saved."""

    keywords: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    date_range: Optional[DateRange] = None
    exclude_keywords: tuple[str, ...] = ()
    min_year: Optional[int] = None


@dataclass
class CrawlRequest:
    """Caller-supplied parameters for one crawl run.

    An unset ``max_papers`` means the configured default target.
    """

    max_papers: Optional[int] = None
    sources: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None
    exclude_keywords: list[str] = field(default_factory=list)
    min_year: Optional[int] = None

    def filters(self) -> CrawlFilters:
        return CrawlFilters(
            keywords=tuple(k.strip() for k in self.keywords if k and k.strip()),
            categories=tuple(c.strip() for c in self.categories if c and c.strip()),
            date_range=self.date_range,
            exclude_keywords=tuple(
                k.strip() for k in self.exclude_keywords if k and k.strip()
            ),
            min_year=self.min_year,
        )

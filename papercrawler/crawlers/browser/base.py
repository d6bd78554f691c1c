"""Browser automation contract used by HTML strategies."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from papercrawler.models.crawl import DetailSelectors, SelectorMap


@dataclass
class BrowserSetupOptions:
    """Per-source page setup."""

    extra_headers: dict[str, str] = field(default_factory=dict)
    allowed_asset_hosts: tuple[str, ...] = ()
    viewport_width: int = 1920
    viewport_height: int = 1080
    default_timeout: float = 30.0


@dataclass
class RawItem:
    """Text fields read from one listing entry, before normalization."""

    title: str = ""
    url: str = ""
    identifier: str = ""
    authors: str = ""
    abstract: str = ""
    date: str = ""
    keywords: str = ""
    categories: str = ""

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "RawItem":
        """Build from a loosely-typed mapping, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: str(v or "").strip() for k, v in data.items() if k in names})


@dataclass
class DetailPage:
    """What a detail fetch read from an item's own page."""

    abstract: str = ""
    identifier_text: str = ""
    links: list[str] = field(default_factory=list)


class BrowserAdapter(ABC):
    """Async browser session. Implementations never retry."""

    @abstractmethod
    async def initialize(self) -> None:
        """Start the browser. Raises BrowserEnvironmentError on failure."""

    @abstractmethod
    async def setup(self, options: BrowserSetupOptions) -> None:
        """Open a page and install headers, viewport and resource policy."""

    @abstractmethod
    async def navigate(self, url: str, timeout: Optional[float] = None) -> None:
        """Load *url*, wait for network idle, then the settle delay."""

    @abstractmethod
    async def extract(self, selectors: SelectorMap) -> list[RawItem]:
        """Evaluate the selector map against the current page."""

    @abstractmethod
    async def wait_for_selector(
        self, selector: str, timeout: Optional[float] = None, visible: bool = False
    ) -> None: ...

    @abstractmethod
    async def evaluate_selector(self, selector: str) -> bool:
        """True when *selector* matches at least one element."""

    @abstractmethod
    async def get_next_page_url(self, selector: str) -> Optional[str]:
        """Absolute URL of the next-page link, or None."""

    @abstractmethod
    async def fetch_detail(self, url: str, detail: DetailSelectors) -> DetailPage:
        """Read abstract and identifier from an item's own page."""

    @abstractmethod
    async def is_connected(self) -> bool: ...

    @abstractmethod
    async def cleanup(self) -> None:
        """Release the session. Idempotent and never raises."""

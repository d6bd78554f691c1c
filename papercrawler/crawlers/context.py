"""Per-run state shared by the orchestrator and every strategy it runs."""

from dataclasses import dataclass, field
from typing import Callable, Optional

from papercrawler.crawlers.throttle import RetryPolicy
from papercrawler.database.repository import PaperStore
from papercrawler.models.crawl import CrawlFilters
from papercrawler.models.paper import Paper


@dataclass
class CrawlContext:
    """Explicit run context passed down to strategies.

    ``stop_requested`` is observed between pages and items; ``saved`` counts
    papers persisted across all sources of the run.
    """

    store: PaperStore
    filters: CrawlFilters = field(default_factory=CrawlFilters)
    target: int = 50
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    on_saved: Optional[Callable[[Paper], None]] = None
    max_reconnects: int = 3
    saved: int = 0
    stop_requested: bool = False

    def request_stop(self) -> None:
        self.stop_requested = True

    @property
    def target_reached(self) -> bool:
        return self.saved >= self.target

    @property
    def should_stop(self) -> bool:
        return self.stop_requested or self.target_reached

    def record_saved(self, paper: Paper) -> None:
        self.saved += 1
        if self.on_saved is not None:
            self.on_saved(paper)

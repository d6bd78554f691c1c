"""Name -> strategy factory registry."""

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

from papercrawler.crawlers.browser.base import BrowserAdapter
from papercrawler.crawlers.feeds import FeedReader, FeedRegistry
from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.crawlers.strategies.biorxiv import BIORXIV_CONFIG, BioRxivStrategy
from papercrawler.crawlers.strategies.pubmed import PUBMED_CONFIG, PubMedStrategy
from papercrawler.crawlers.strategies.rss import RSS_CONFIG, RssFeedStrategy
from papercrawler.database.repository import PaperStore
from papercrawler.models.crawl import SourceConfig

logger = logging.getLogger(__name__)


@dataclass
class StrategyDeps:
    """Collaborators handed to every strategy factory."""

    store: PaperStore
    feeds: FeedRegistry
    feed_reader: FeedReader
    adapter_factory: Callable[[], BrowserAdapter]
    related_terms: Optional[Mapping[str, Sequence[str]]] = None


StrategyFactory = Callable[[SourceConfig, StrategyDeps], SourceStrategy]


class CrawlerRegistry:
    """Case-insensitive mapping of source names to factories and default configs."""

    def __init__(self):
        self._factories: dict[str, tuple[str, StrategyFactory, SourceConfig]] = {}

    def register(self, factory: StrategyFactory, config: SourceConfig) -> None:
        """Register a source under ``config.name``; re-registering replaces it."""
        self._factories[config.name.lower()] = (config.name, factory, config)

    def names(self) -> list[str]:
        return [name for name, _, _ in self._factories.values()]

    def has(self, name: str) -> bool:
        return name.lower() in self._factories

    def default_config(self, name: str) -> Optional[SourceConfig]:
        entry = self._factories.get(name.lower())
        return entry[2] if entry else None

    def create(
        self,
        name: str,
        deps: StrategyDeps,
        config: Optional[SourceConfig] = None,
    ) -> Optional[SourceStrategy]:
        """Build a strategy, or return None for an unknown name."""
        entry = self._factories.get(name.lower())
        if entry is None:
            logger.warning("Unknown source: %s", name)
            return None
        _, factory, default = entry
        return factory(config or default, deps)


def _pubmed(config: SourceConfig, deps: StrategyDeps) -> SourceStrategy:
    return PubMedStrategy(config, deps.store, deps.adapter_factory)


def _biorxiv(config: SourceConfig, deps: StrategyDeps) -> SourceStrategy:
    return BioRxivStrategy(config, deps.store, deps.adapter_factory)


def _rss(config: SourceConfig, deps: StrategyDeps) -> SourceStrategy:
    return RssFeedStrategy(
        config, deps.store, deps.feeds, deps.feed_reader, related_terms=deps.related_terms
    )


def default_registry() -> CrawlerRegistry:
    """Registry with the built-in PubMed, bioRxiv and RSS sources."""
    registry = CrawlerRegistry()
    registry.register(_pubmed, PUBMED_CONFIG)
    registry.register(_biorxiv, BIORXIV_CONFIG)
    registry.register(_rss, RSS_CONFIG)
    return registry

"""Source strategies."""

from papercrawler.crawlers.strategies.base import SourceStrategy
from papercrawler.crawlers.strategies.biorxiv import BIORXIV_CONFIG, BioRxivStrategy
from papercrawler.crawlers.strategies.html import HtmlSourceStrategy
from papercrawler.crawlers.strategies.pubmed import PUBMED_CONFIG, PubMedStrategy
from papercrawler.crawlers.strategies.rss import RSS_CONFIG, FeedItem, RssFeedStrategy

__all__ = [
    "BIORXIV_CONFIG",
    "BioRxivStrategy",
    "FeedItem",
    "HtmlSourceStrategy",
    "PUBMED_CONFIG",
    "PubMedStrategy",
    "RSS_CONFIG",
    "RssFeedStrategy",
    "SourceStrategy",
]

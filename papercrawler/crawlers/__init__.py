"""Acquisition pipeline: strategies, browser adapters, feeds and orchestration."""

from papercrawler.crawlers.context import CrawlContext
from papercrawler.crawlers.orchestrator import CrawlOrchestrator
from papercrawler.crawlers.registry import CrawlerRegistry, StrategyDeps, default_registry
from papercrawler.crawlers.throttle import RateLimiter, RetryPolicy

__all__ = [
    "CrawlContext",
    "CrawlOrchestrator",
    "CrawlerRegistry",
    "RateLimiter",
    "RetryPolicy",
    "StrategyDeps",
    "default_registry",
]

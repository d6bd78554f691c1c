"""Application services."""

from papercrawler.services.crawl_service import CrawlerBusyError, CrawlService

__all__ = ["CrawlService", "CrawlerBusyError"]

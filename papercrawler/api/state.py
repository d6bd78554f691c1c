"""Per-application state and the FastAPI dependency that hands it to routes."""

from dataclasses import dataclass

from fastapi import Request

from papercrawler.config import Settings
from papercrawler.database.repository import PaperRepository
from papercrawler.services.crawl_service import CrawlService


@dataclass
class AppState:
    """Services built once in the lifespan and stored on ``app.state.papercrawler``."""

    settings: Settings
    repo: PaperRepository
    service: CrawlService


def get_state(request: Request) -> AppState:
    return request.app.state.papercrawler

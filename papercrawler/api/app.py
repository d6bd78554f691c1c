"""FastAPI application exposing crawler control and stored papers as JSON."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from papercrawler import __version__
from papercrawler.api.routers import crawler, papers
from papercrawler.api.state import AppState
from papercrawler.config import Settings
from papercrawler.database.repository import PaperRepository
from papercrawler.services.crawl_service import CrawlService

logger = logging.getLogger(__name__)


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Build the application.

    Args:
        state: Pre-built services (tests); loaded from ``.metadata`` on startup if omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_state = state
        if app_state is None:
            settings = Settings.load()
            repo = PaperRepository(settings.db_path)
            app_state = AppState(
                settings=settings,
                repo=repo,
                service=CrawlService(settings, store=repo),
            )
        app.state.papercrawler = app_state
        yield
        service = app_state.service
        if service.is_running:
            logger.info("Shutting down: stopping active crawl")
            await service.stop()
            try:
                await asyncio.wait_for(service.wait(), timeout=30)
            except asyncio.TimeoutError:
                logger.warning("Crawl did not stop within 30s")
        service.close()

    app = FastAPI(title="PaperCrawler", version=__version__, lifespan=lifespan)
    app.include_router(crawler.router)
    app.include_router(papers.router)
    return app


app = create_app()

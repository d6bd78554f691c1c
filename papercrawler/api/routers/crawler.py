"""Crawler control, feed management and store reset routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from papercrawler.api.state import AppState, get_state
from papercrawler.models.crawl import CrawlRequest, DateRange
from papercrawler.services.crawl_service import CrawlerBusyError

router = APIRouter(prefix="/api/crawler")


class StartPayload(BaseModel):
    """Request body for starting a crawl."""

    max_papers: Optional[int] = Field(None, ge=1)
    sources: list[str] = []
    keywords: list[str] = []
    categories: list[str] = []
    exclude_keywords: list[str] = []
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    min_year: Optional[int] = None

    def to_request(self) -> CrawlRequest:
        date_range = None
        if self.date_from or self.date_to:
            date_range = DateRange(start=self.date_from, end=self.date_to)
        return CrawlRequest(
            max_papers=self.max_papers,
            sources=self.sources,
            keywords=self.keywords,
            categories=self.categories,
            date_range=date_range,
            exclude_keywords=self.exclude_keywords,
            min_year=self.min_year,
        )


class FeedPayload(BaseModel):
    """Request body for registering a feed."""

    url: str
    name: str


class FeedRemovePayload(BaseModel):
    url: str


@router.post("/start")
async def start_crawler(body: StartPayload, state: AppState = Depends(get_state)):
    """Start a background crawl."""
    try:
        status = await state.service.start(body.to_request())
    except CrawlerBusyError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return JSONResponse({"message": "Crawler started", "status": status.to_dict()})


@router.post("/stop")
async def stop_crawler(state: AppState = Depends(get_state)):
    status = await state.service.stop()
    return JSONResponse({"message": "Stop requested", "status": status.to_dict()})


@router.get("/status")
async def crawler_status(state: AppState = Depends(get_state)):
    return JSONResponse(state.service.get_status().to_dict())


@router.get("/events")
async def crawler_events(limit: int = 50, state: AppState = Depends(get_state)):
    """Most recent crawler log lines."""
    return JSONResponse(state.service.recent_events(limit))


@router.get("/feeds")
async def list_feeds(state: AppState = Depends(get_state)):
    return JSONResponse([f.to_dict() for f in state.service.list_feeds()])


@router.post("/feeds/add")
async def add_feed(body: FeedPayload, state: AppState = Depends(get_state)):
    try:
        feed = state.service.add_feed(body.url, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return JSONResponse(feed.to_dict(), status_code=201)


@router.post("/feeds/remove")
async def remove_feed(body: FeedRemovePayload, state: AppState = Depends(get_state)):
    try:
        feed = state.service.remove_feed(body.url)
    except KeyError as e:
        raise HTTPException(status_code=404, detail="Feed not found") from e
    return JSONResponse(feed.to_dict())


@router.post("/reset")
async def reset_store(state: AppState = Depends(get_state)):
    """Delete every stored paper (refused while a crawl is running)."""
    try:
        deleted = state.service.reset_store()
    except CrawlerBusyError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return JSONResponse({"deleted": deleted})

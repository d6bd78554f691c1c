"""Read-only routes over stored papers."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from papercrawler.api.state import AppState, get_state

router = APIRouter(prefix="/api/papers")

# Page size for list endpoints
PAGE_SIZE = 50


@router.get("")
async def list_papers(
    limit: int = Query(PAGE_SIZE, ge=1, le=500),
    offset: int = Query(0, ge=0),
    source: Optional[str] = Query(None, description="Only papers from this source"),
    state: AppState = Depends(get_state),
):
    """Most recently stored papers, newest first."""
    papers = state.repo.find_all(limit=limit, offset=offset, source=source)
    return JSONResponse(
        {
            "total": state.repo.count(),
            "offset": offset,
            "papers": [p.to_dict() for p in papers],
        }
    )


@router.get("/search")
async def search_papers(
    q: str = Query(..., min_length=1, description="Search query"),
    limit: int = Query(PAGE_SIZE, ge=1, le=500),
    state: AppState = Depends(get_state),
):
    papers = state.repo.search(q, limit=limit)
    return JSONResponse({"query": q, "papers": [p.to_dict() for p in papers]})


@router.get("/{paper_id}")
async def get_paper(paper_id: int, state: AppState = Depends(get_state)):
    paper = state.repo.find_by_id(paper_id)
    if paper is None:
        raise HTTPException(status_code=404, detail="Paper not found")
    return JSONResponse(paper.to_dict())

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ...schemas import SearchRequest, SearchResult
from ...search import InvalidQueryError, SearchEngine

router = APIRouter(tags=["search"])

SearchQuery = Annotated[
    str | None,
    Query(alias="q", description="Free-text team building search"),
]


def get_engine(request: Request) -> SearchEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Search engine not initialised")
    return engine


async def _run(engine: SearchEngine, query: object) -> SearchResult:
    try:
        return await engine.search(query)
    except InvalidQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/search", response_model=SearchResult)
async def search(
    req: SearchRequest, engine: SearchEngine = Depends(get_engine)
) -> SearchResult:
    return await _run(engine, req.query)


@router.get("/search", response_model=SearchResult)
async def search_get(
    q: SearchQuery = None, engine: SearchEngine = Depends(get_engine)
) -> SearchResult:
    return await _run(engine, q)

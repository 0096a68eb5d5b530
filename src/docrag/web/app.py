"""FastAPI application exposing documentation retrieval."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from docrag.config import AppConfig
from docrag.errors import ConfigError, DocRagError, NotInitializedError
from docrag.index.indexer import InitState
from docrag.service import RetrievalService
from docrag.utils.text import build_context_message

LOGGER = logging.getLogger(__name__)

SNIPPET_CHARS = 280

app = FastAPI(title="docrag", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_service: RetrievalService | None = None
_service_lock = threading.Lock()


class SearchPayload(BaseModel):
    query: str


class SearchHit(BaseModel):
    path: str
    score: float
    snippet: str


class SearchResponse(BaseModel):
    results: List[SearchHit]
    context: str


def get_service() -> RetrievalService:
    global _service
    with _service_lock:
        if _service is None:
            try:
                _service = RetrievalService.from_config(AppConfig.from_env())
            except ConfigError as exc:
                raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _service


def _initialize(service: RetrievalService) -> None:
    try:
        service.initialize()
    except Exception as exc:
        # /health reports the failed state.
        LOGGER.debug("Background initialization failed: %s", exc)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    try:
        service = get_service()
    except HTTPException as exc:
        LOGGER.error("Retrieval service unavailable: %s", exc.detail)
        return
    app.state.init_task = asyncio.get_running_loop().create_task(
        asyncio.to_thread(_initialize, service)
    )


@app.get("/health")
async def health(service: RetrievalService = Depends(get_service)) -> dict[str, Any]:
    return {"status": service.indexer.state.value, "documents": len(service.cache)}


@app.post("/search")
async def search_documents(
    payload: SearchPayload, service: RetrievalService = Depends(get_service)
) -> SearchResponse:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    if service.indexer.state is InitState.FAILED:
        raise HTTPException(status_code=503, detail="Retrieval service failed to initialize")

    try:
        results = await asyncio.to_thread(service.search, query)
    except NotInitializedError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except DocRagError as exc:
        LOGGER.error("Search failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    hits = [
        SearchHit(
            path=item.document.path,
            score=item.score,
            snippet=item.document.content[:SNIPPET_CHARS],
        )
        for item in results
    ]
    return SearchResponse(
        results=hits,
        context=build_context_message(item.document for item in results),
    )

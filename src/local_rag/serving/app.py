"""FastAPI application exposing ingestion, query and stats over HTTP.

``POST /ingest`` reads files from the server's filesystem.  Bind the app to
localhost, or set ``INGEST_ROOT`` so that only paths under that directory
are accepted.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from local_rag.config import settings
from local_rag.errors import EmbeddingError, LocalRagError, PathError
from local_rag.ingestion.embedder import get_embedder
from local_rag.ingestion.pipeline import ingest
from local_rag.retrieval.models import CorpusStats, IngestReport, SearchResult
from local_rag.retrieval.retriever import run_query
from local_rag.retrieval.sqlite_store import SQLiteStore
from local_rag.retrieval.synthesis import synthesize_answer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open one store and one embedder for the lifetime of the process."""
    store = SQLiteStore(settings.db_path)
    app.state.store = store
    app.state.embedder = get_embedder(settings)
    try:
        yield
    finally:
        store.close()


app = FastAPI(
    title="Local RAG API",
    version="0.1.0",
    description="REST interface to the local retrieval pipeline.",
    lifespan=lifespan,
)


# ── Request / Response schemas ────────────────────────────────────────
class IngestRequest(BaseModel):
    """Files or directories to ingest."""

    paths: list[str] = Field(min_length=1)
    chunk_size: int = Field(default=settings.chunk_size, ge=0)
    overlap: int = Field(default=settings.chunk_overlap, ge=0)


class QueryRequest(BaseModel):
    """Incoming question from the user."""

    query: str
    top_k: int = Field(default=settings.top_k, ge=0)


class QueryResponse(BaseModel):
    """Synthesized answer plus the ranked chunks behind it."""

    answer: str
    results: list[SearchResult] = []


# ── Error mapping ─────────────────────────────────────────────────────
@app.exception_handler(LocalRagError)
async def local_rag_error_handler(request: Request, exc: LocalRagError) -> JSONResponse:
    if isinstance(exc, PathError):
        status = 404
    elif isinstance(exc, EmbeddingError):
        status = 502
    else:
        status = 500
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


# ── Routes ────────────────────────────────────────────────────────────
def _check_ingest_root(paths: list[str]) -> None:
    if settings.ingest_root is None:
        return
    root = Path(settings.ingest_root).resolve()
    for raw in paths:
        if not Path(raw).resolve().is_relative_to(root):
            raise PathError(raw, message=f"Path is outside the ingest root: {raw}")


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/ingest", response_model=IngestReport)
async def ingest_documents(request: IngestRequest) -> IngestReport:
    """Ingest files into the store."""
    _check_ingest_root(request.paths)
    return ingest(
        app.state.store,
        app.state.embedder,
        request.paths,
        chunk_size=request.chunk_size,
        overlap=request.overlap,
    )


@app.post("/query", response_model=QueryResponse)
async def query(request: QueryRequest) -> QueryResponse:
    """Rank stored chunks for the question and synthesize an answer."""
    results = run_query(app.state.store, app.state.embedder, request.query, request.top_k)
    return QueryResponse(answer=synthesize_answer(request.query, results), results=results)


@app.get("/stats", response_model=CorpusStats)
async def stats() -> CorpusStats:
    """Corpus counts and last ingest timestamp."""
    return app.state.store.corpus_stats()

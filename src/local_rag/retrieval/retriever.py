"""Semantic retriever — brute-force cosine ranking over the whole store.

This module is the **primary public interface** for querying.  Every
query scans every stored chunk; there is no index, which is fine for
local, modest-sized corpora.

Usage::

    from local_rag.ingestion.embedder import LocalHashEmbedder
    from local_rag.retrieval.retriever import SemanticRetriever
    from local_rag.retrieval.sqlite_store import SQLiteStore

    with SQLiteStore("data/rag.db") as store:
        retriever = SemanticRetriever(store, LocalHashEmbedder())
        for r in retriever.search("What is Rust?", k=3):
            print(r.short_ref(), r.score)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from local_rag.ingestion.embedder import Embedder
from local_rag.retrieval.base import ChunkStoreBase
from local_rag.retrieval.models import SearchResult

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity over the shared prefix of *a* and *b*.

    Returns exactly ``0.0`` when the shared length is zero or either
    prefix has zero norm.
    """
    length = min(len(a), len(b))
    if length == 0:
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for i in range(length):
        x = float(a[i])
        y = float(b[i])
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return max(min(dot / (math.sqrt(norm_a) * math.sqrt(norm_b)), 1.0), -1.0)


def rank(
    store: ChunkStoreBase,
    query_embedding: Sequence[float],
    top_k: int,
) -> list[SearchResult]:
    """Score every stored chunk against *query_embedding* and keep the best *top_k*."""
    if top_k < 0:
        raise ValueError(f"top_k must be non-negative, got {top_k}")
    if top_k == 0:
        return []

    scored = [
        SearchResult(
            chunk=chunk,
            document_path=path,
            score=cosine_similarity(query_embedding, chunk.embedding),
        )
        for chunk, path in store.all_chunks_with_paths()
    ]
    scored.sort(key=lambda r: r.score, reverse=True)
    return scored[:top_k]


def run_query(
    store: ChunkStoreBase,
    embedder: Embedder,
    question: str,
    top_k: int = 6,
) -> list[SearchResult]:
    """Embed *question* and return the *top_k* most similar chunks."""
    query_embedding = embedder.embed_query(question)
    results = rank(store, query_embedding, top_k)
    logger.info("Query %r returned %d results", question, len(results))
    return results


class SemanticRetriever:
    """High-level retriever over a store and an embedder.

    Parameters
    ----------
    store:
        Store to scan.
    embedder:
        Must be the same kind of embedder that produced the stored vectors.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
        ``None`` keeps everything.
    """

    def __init__(
        self,
        store: ChunkStoreBase,
        embedder: Embedder,
        *,
        default_k: int = 6,
        score_threshold: float | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    def search(self, query: str, *, k: int | None = None) -> list[SearchResult]:
        """Run a semantic search for *query*.

        Parameters
        ----------
        query:
            Natural-language query string.
        k:
            Number of results (defaults to ``self.default_k``).

        Returns
        -------
        list[SearchResult]
            Results in non-increasing score order.
        """
        k = self.default_k if k is None else k
        return self._filter(run_query(self._store, self._embedder, query, k))

    def search_by_embedding(
        self,
        embedding: Sequence[float],
        *,
        k: int | None = None,
    ) -> list[SearchResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = self.default_k if k is None else k
        return self._filter(rank(self._store, embedding, k))

    # -- LangChain compat -----------------------------------------------------

    def as_langchain_retriever(self, k: int = 6) -> Any:
        """Return a thin LangChain-compatible retriever wrapper.

        LangChain is imported only here so the rest of the package has no
        LangChain dependency at import time.
        """
        from langchain_core.documents import Document
        from langchain_core.retrievers import BaseRetriever

        outer = self

        class _LCRetriever(BaseRetriever):
            """Adapter that satisfies LangChain's retriever protocol."""

            def _get_relevant_documents(self_inner, query: str, **kwargs: Any) -> list[Document]:  # type: ignore[override]  # noqa: N805
                return [
                    Document(
                        page_content=r.chunk.text,
                        metadata={
                            "source": r.document_path,
                            "chunk_id": r.chunk.id,
                            "chunk_index": r.chunk.chunk_index,
                            "start_char": r.chunk.start_char,
                            "end_char": r.chunk.end_char,
                            "score": r.score,
                        },
                    )
                    for r in outer.search(query, k=k)
                ]

        return _LCRetriever()

    # -- internals ------------------------------------------------------------

    def _filter(self, results: list[SearchResult]) -> list[SearchResult]:
        if self.score_threshold is None:
            return results
        return [r for r in results if r.score >= self.score_threshold]

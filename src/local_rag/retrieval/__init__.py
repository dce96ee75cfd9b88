"""
Retrieval — persistence, similarity ranking and result models.

The pipelines only talk to :class:`ChunkStoreBase`, so the SQLite
backend can be swapped without touching ingestion or query code.

Public surface
--------------
- :class:`SemanticRetriever` / :func:`run_query` — query entry points.
- :func:`cosine_similarity` — the ranking metric.
- :class:`ChunkStoreBase` — abstract store.
- :class:`SQLiteStore` — default SQLite backend.
- :class:`Document`, :class:`Chunk`, :class:`SearchResult`,
  :class:`CorpusStats`, :class:`IngestReport` — data models.
"""

from local_rag.retrieval.base import ChunkStoreBase
from local_rag.retrieval.models import Chunk, CorpusStats, Document, IngestReport, SearchResult
from local_rag.retrieval.retriever import SemanticRetriever, cosine_similarity, rank, run_query
from local_rag.retrieval.sqlite_store import SQLiteStore

__all__ = [
    "Chunk",
    "ChunkStoreBase",
    "CorpusStats",
    "Document",
    "IngestReport",
    "SQLiteStore",
    "SearchResult",
    "SemanticRetriever",
    "cosine_similarity",
    "rank",
    "run_query",
]

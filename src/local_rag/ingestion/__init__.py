"""
Ingestion — file discovery, chunking, embedding and storage.

Converts raw text files into embedded chunks persisted in a
:class:`~local_rag.retrieval.base.ChunkStoreBase`.
"""

from local_rag.ingestion.chunker import TextWindow, chunk_text
from local_rag.ingestion.embedder import Embedder, LocalHashEmbedder, OpenAIEmbedder, get_embedder
from local_rag.ingestion.pipeline import ingest

__all__ = [
    "Embedder",
    "LocalHashEmbedder",
    "OpenAIEmbedder",
    "TextWindow",
    "chunk_text",
    "get_embedder",
    "ingest",
]

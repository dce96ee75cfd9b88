"""Abstract base class for chunk-store backends.

Adding a new backend only requires subclassing :class:`ChunkStoreBase`
and implementing the abstract methods.  The ingestion and query
pipelines are backend-agnostic.

A backend without a relational engine must reproduce the document
upsert and the cascade from documents to chunks itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from local_rag.retrieval.models import Chunk, CorpusStats, Document


class ChunkStoreBase(ABC):
    """Backend-agnostic persistence for documents and their chunks."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def insert_document(self, doc: Document) -> None:
        """Insert *doc*, or update its ``path`` if the id already exists.

        ``created_at`` of an existing document is never changed.
        """
        ...

    @abstractmethod
    def insert_chunk(self, chunk: Chunk) -> None:
        """Append *chunk*.  Its ``doc_id`` must reference a stored document."""
        ...

    @abstractmethod
    def all_chunks_with_paths(self) -> list[tuple[Chunk, str]]:
        """Return every stored chunk paired with its document's path.

        Order is unspecified; ranking belongs to the query pipeline.
        """
        ...

    @abstractmethod
    def corpus_stats(self) -> CorpusStats:
        """Return document count, chunk count and the newest ``created_at``."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the underlying handle."""
        ...

    # -- optional overrides ---------------------------------------------------

    def insert_chunks(self, chunks: Iterable[Chunk]) -> None:
        """Append several chunks.  Backends should override to make this atomic."""
        for chunk in chunks:
            self.insert_chunk(chunk)

    def save_document(self, doc: Document, chunks: Iterable[Chunk]) -> None:
        """Upsert *doc* and append its *chunks*.

        Backends should override to write both in one transaction.
        """
        self.insert_document(doc)
        self.insert_chunks(chunks)

    def __enter__(self) -> ChunkStoreBase:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

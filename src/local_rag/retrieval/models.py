"""Domain models for documents, chunks and retrieval results.

``Document`` and ``Chunk`` are frozen value objects: the store copies
them in and out, so no mutable state is shared across that boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """A single ingested source file.

    Attributes
    ----------
    id:
        Opaque unique identifier (UUID4 string by default).
    path:
        Source path exactly as it was discovered during ingestion.
    created_at:
        UTC timestamp of when the document was first ingested.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    path: str
    created_at: datetime = Field(default_factory=_utcnow)


class Chunk(BaseModel):
    """A window of a document's text together with its embedding.

    Attributes
    ----------
    id:
        Opaque unique identifier.
    doc_id:
        Identifier of the owning :class:`Document`.
    chunk_index:
        Zero-based position of the chunk within its document.
    text:
        Literal chunk text.
    embedding:
        Vector produced by the embedder used at ingestion time.
    start_char / end_char:
        Half-open ``[start_char, end_char)`` span into the document text,
        counted in characters.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    doc_id: str
    chunk_index: int = Field(ge=0)
    text: str
    embedding: list[float] = Field(default_factory=list)
    start_char: int = Field(ge=0)
    end_char: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_span(self) -> Chunk:
        if self.end_char < self.start_char:
            raise ValueError(
                f"end_char ({self.end_char}) must be >= start_char ({self.start_char})"
            )
        return self


class SearchResult(BaseModel):
    """A scored chunk returned by the query pipeline."""

    chunk: Chunk
    document_path: str
    score: float

    def short_ref(self) -> str:
        """Return a compact ``[path§chunk]`` reference string."""
        return f"[{self.document_path}§{self.chunk.chunk_index}]"

    def __str__(self) -> str:  # noqa: D105
        return f"{self.short_ref()} {self.chunk.text[:120]}…"


class CorpusStats(BaseModel):
    """Aggregate counts over the stored corpus."""

    document_count: int = 0
    chunk_count: int = 0
    last_ingested_at: datetime | None = None


class IngestReport(BaseModel):
    """Summary of a single ingestion run."""

    embedder: str
    files_found: int = 0
    files_skipped: int = 0
    documents_stored: int = 0
    chunks_stored: int = 0

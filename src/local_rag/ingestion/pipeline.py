"""Ingestion pipeline: discover → chunk → embed → store.

All chunk texts of a run are embedded in a **single** batch so a remote
backend is called once.  Nothing is written until that call succeeds;
each document is then saved together with its chunks in one
transaction.  A storage failure part-way through leaves the documents
saved before it in place.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from local_rag.errors import EmbeddingError
from local_rag.ingestion.chunker import TextWindow, chunk_text
from local_rag.ingestion.embedder import Embedder
from local_rag.ingestion.loader import collect_files, read_text
from local_rag.retrieval.base import ChunkStoreBase
from local_rag.retrieval.models import Chunk, Document, IngestReport

logger = logging.getLogger(__name__)


@dataclass
class _PendingDocument:
    """A chunked document waiting for its embeddings."""

    document: Document
    windows: list[TextWindow] = field(default_factory=list)


def ingest(
    store: ChunkStoreBase,
    embedder: Embedder,
    paths: Iterable[str | Path],
    chunk_size: int = 512,
    overlap: int = 64,
) -> IngestReport:
    """Ingest every file under *paths* into *store*.

    Parameters
    ----------
    store:
        Destination store.
    embedder:
        Backend used to embed every chunk.
    paths:
        Files and/or directories; directories are walked recursively.
    chunk_size / overlap:
        Character window parameters forwarded to :func:`chunk_text`.

    Returns
    -------
    IngestReport
        Counts of files found / skipped and documents / chunks stored.

    Raises
    ------
    PathError
        A path does not exist.
    DocumentReadError
        A file could not be read as UTF-8.
    EmbeddingError
        The embedder failed or returned the wrong number of vectors.
    StorageError
        The store rejected a write.
    """
    logger.info(
        "Ingesting with embedder=%s chunk_size=%d overlap=%d",
        embedder.name,
        chunk_size,
        overlap,
    )
    report = IngestReport(embedder=embedder.name)

    files = collect_files(paths)
    report.files_found = len(files)
    logger.info("Found %d files to ingest", len(files))

    pending: list[_PendingDocument] = []
    for path in files:
        content = read_text(path)
        if not content.strip():
            logger.info("Skipping empty file %s", path)
            report.files_skipped += 1
            continue

        windows = chunk_text(content, chunk_size, overlap)
        pending.append(_PendingDocument(Document(path=str(path)), windows))
        logger.info("%s -> %d chunks", path, len(windows))

    texts = [w.text for p in pending for w in p.windows]
    if not texts:
        logger.info("No chunks to embed; nothing to do")
        return report

    embeddings = embedder.embed(texts)
    if len(embeddings) != len(texts):
        raise EmbeddingError(
            f"Embedder returned {len(embeddings)} vectors for {len(texts)} texts",
            provider_name=embedder.name,
        )

    vectors = iter(embeddings)
    for item in pending:
        chunks = [
            Chunk(
                doc_id=item.document.id,
                chunk_index=idx,
                text=window.text,
                embedding=next(vectors),
                start_char=window.start_char,
                end_char=window.end_char,
            )
            for idx, window in enumerate(item.windows)
        ]
        store.save_document(item.document, chunks)
        report.documents_stored += 1
        report.chunks_stored += len(chunks)

    logger.info(
        "Stored %d documents and %d chunks",
        report.documents_stored,
        report.chunks_stored,
    )
    return report

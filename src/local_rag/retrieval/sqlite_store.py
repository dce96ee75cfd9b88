"""SQLite implementation of the chunk-store abstraction.

Two tables related by a cascading foreign key::

    documents(id, path, created_at)
    chunks(id, doc_id -> documents.id ON DELETE CASCADE, chunk_index,
           text, embedding, start_char, end_char)

Embeddings are stored as JSON arrays of floats.  Timestamps are stored
as ISO-8601 strings in UTC.  The store holds one SQLite connection for
its whole lifetime, and every operation holds a lock on it, so one
store may be shared between threads.  Call :meth:`SQLiteStore.close`
(or use it as a context manager) to release it.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    event,
    func,
    insert,
    select,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from local_rag.errors import EncodingError, StorageError
from local_rag.retrieval.base import ChunkStoreBase
from local_rag.retrieval.models import Chunk, CorpusStats, Document

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


# ---------------------------------------------------------------------------
# ORM models (never leave this module)
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class DocumentRecord(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    path: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[str] = mapped_column(String, nullable=False)

    chunks = relationship(
        "ChunkRecord",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ChunkRecord(Base):
    __tablename__ = "chunks"
    __table_args__ = (
        CheckConstraint("chunk_index >= 0", name="ck_chunks_chunk_index"),
        CheckConstraint("start_char >= 0", name="ck_chunks_start_char"),
        CheckConstraint("end_char >= start_char", name="ck_chunks_span"),
        Index("idx_chunks_doc_id", "doc_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    doc_id: Mapped[str] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[str] = mapped_column(Text, nullable=False)
    start_char: Mapped[int] = mapped_column(Integer, nullable=False)
    end_char: Mapped[int] = mapped_column(Integer, nullable=False)

    document = relationship("DocumentRecord", back_populates="chunks")


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_timestamp(raw: str) -> datetime:
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise StorageError(f"Malformed created_at timestamp {raw!r}") from exc


def encode_embedding(embedding: list[float]) -> str:
    """Serialize *embedding* as a JSON array of floats."""
    return json.dumps([float(x) for x in embedding])


def decode_embedding(raw: str) -> list[float]:
    """Parse a JSON float array written by :func:`encode_embedding`."""
    try:
        values = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise EncodingError(f"Stored embedding is not valid JSON: {exc}") from exc

    if not isinstance(values, list) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
    ):
        raise EncodingError("Stored embedding is not an array of numbers")
    return [float(v) for v in values]


def _create_engine(db_path: str | Path) -> Engine:
    if str(db_path) == IN_MEMORY:
        url = "sqlite://"
    else:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{path}"

    engine = create_engine(
        url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SQLiteStore(ChunkStoreBase):
    """SQLite-backed document / chunk store.

    Parameters
    ----------
    db_path:
        Database file.  Missing parent directories are created.  Pass
        ``":memory:"`` for a throwaway in-memory database.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        try:
            self._engine = _create_engine(db_path)
            Base.metadata.create_all(self._engine)
        except (OSError, SQLAlchemyError) as exc:
            raise StorageError(f"Failed to open store at {self.db_path}: {exc}") from exc
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._lock = threading.RLock()
        logger.info("Opened store at %s", self.db_path)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        """Yield a session committed on success and rolled back on failure.

        The lock spans the whole transaction: all sessions share one
        connection.
        """
        with self._lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Failed to {action}: {exc}") from exc
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()

    # -- writes ---------------------------------------------------------------

    def insert_document(self, doc: Document) -> None:
        with self._session("insert document") as session:
            self._upsert_document(session, doc)

    def insert_chunk(self, chunk: Chunk) -> None:
        with self._session("insert chunk") as session:
            session.execute(insert(ChunkRecord), [self._chunk_row(chunk)])

    def insert_chunks(self, chunks: Iterable[Chunk]) -> None:
        rows = [self._chunk_row(c) for c in chunks]
        if not rows:
            return
        with self._session("insert chunks") as session:
            session.execute(insert(ChunkRecord), rows)

    def save_document(self, doc: Document, chunks: Iterable[Chunk]) -> None:
        rows = [self._chunk_row(c) for c in chunks]
        with self._session("save document") as session:
            self._upsert_document(session, doc)
            if rows:
                session.execute(insert(ChunkRecord), rows)
        logger.debug("Saved document %s with %d chunks", doc.id, len(rows))

    @staticmethod
    def _upsert_document(session: Session, doc: Document) -> None:
        stmt = sqlite_insert(DocumentRecord).values(
            id=doc.id,
            path=doc.path,
            created_at=_format_timestamp(doc.created_at),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={"path": stmt.excluded.path},
        )
        session.execute(stmt)

    @staticmethod
    def _chunk_row(chunk: Chunk) -> dict[str, Any]:
        return {
            "id": chunk.id,
            "doc_id": chunk.doc_id,
            "chunk_index": chunk.chunk_index,
            "text": chunk.text,
            "embedding": encode_embedding(chunk.embedding),
            "start_char": chunk.start_char,
            "end_char": chunk.end_char,
        }

    # -- reads ----------------------------------------------------------------

    def get_document(self, doc_id: str) -> Document | None:
        """Return the stored document with *doc_id*, or ``None``."""
        with self._session("read document") as session:
            record = session.get(DocumentRecord, doc_id)
            if record is None:
                return None
            return Document(
                id=record.id,
                path=record.path,
                created_at=_parse_timestamp(record.created_at),
            )

    def all_chunks_with_paths(self) -> list[tuple[Chunk, str]]:
        stmt = select(ChunkRecord, DocumentRecord.path).join(
            DocumentRecord, ChunkRecord.doc_id == DocumentRecord.id
        )
        with self._session("read chunks") as session:
            return [(self._to_chunk(record), path) for record, path in session.execute(stmt)]

    def corpus_stats(self) -> CorpusStats:
        with self._session("read corpus stats") as session:
            doc_count = session.scalar(select(func.count()).select_from(DocumentRecord)) or 0
            chunk_count = session.scalar(select(func.count()).select_from(ChunkRecord)) or 0
            latest = session.scalar(select(func.max(DocumentRecord.created_at)))

        return CorpusStats(
            document_count=doc_count,
            chunk_count=chunk_count,
            last_ingested_at=_parse_timestamp(latest) if latest is not None else None,
        )

    @staticmethod
    def _to_chunk(record: ChunkRecord) -> Chunk:
        embedding = decode_embedding(record.embedding)
        try:
            return Chunk(
                id=record.id,
                doc_id=record.doc_id,
                chunk_index=record.chunk_index,
                text=record.text,
                embedding=embedding,
                start_char=record.start_char,
                end_char=record.end_char,
            )
        except ValidationError as exc:
            raise StorageError(f"Stored chunk {record.id} is invalid: {exc}") from exc

    # -- lifecycle ------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._engine.dispose()
        logger.debug("Closed store at %s", self.db_path)

"""Unit tests for the SQLite store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import text

from local_rag.errors import EncodingError, StorageError
from local_rag.retrieval.models import Chunk, Document
from local_rag.retrieval.sqlite_store import SQLiteStore, decode_embedding, encode_embedding


def _chunk(doc: Document, idx: int = 0, embedding: list[float] | None = None, **kwargs) -> Chunk:
    return Chunk(
        doc_id=doc.id,
        chunk_index=idx,
        text=f"chunk {idx}",
        embedding=embedding if embedding is not None else [0.5, 1.0, -0.25],
        start_char=idx * 10,
        end_char=idx * 10 + 8,
        **kwargs,
    )


class TestSchema:
    def test_creates_parent_directory(self, db_path: Path) -> None:
        with SQLiteStore(db_path):
            pass
        assert db_path.exists()

    def test_reopen_existing_file(self, db_path: Path) -> None:
        doc = Document(path="a.txt")
        with SQLiteStore(db_path) as s:
            s.insert_document(doc)
            s.insert_chunk(_chunk(doc))
        with SQLiteStore(db_path) as s:
            stats = s.corpus_stats()
        assert stats.document_count == 1
        assert stats.chunk_count == 1

    def test_in_memory(self) -> None:
        with SQLiteStore(":memory:") as s:
            assert s.corpus_stats().document_count == 0

    def test_unopenable_path_raises_storage_error(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError):
            SQLiteStore(tmp_path)  # a directory, not a file


class TestDocuments:
    def test_upsert_is_idempotent(self, store: SQLiteStore) -> None:
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        doc = Document(id="doc-1", path="a.txt", created_at=created)
        store.insert_document(doc)
        store.insert_document(doc)
        stats = store.corpus_stats()
        assert stats.document_count == 1
        assert stats.last_ingested_at == created

    def test_reinsert_updates_path_not_created_at(self, store: SQLiteStore) -> None:
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store.insert_document(Document(id="doc-1", path="old.txt", created_at=created))
        store.insert_document(
            Document(id="doc-1", path="new.txt", created_at=created + timedelta(days=3))
        )
        stored = store.get_document("doc-1")
        assert stored is not None
        assert stored.path == "new.txt"
        assert stored.created_at == created

    def test_get_missing_document(self, store: SQLiteStore) -> None:
        assert store.get_document("nope") is None


class TestChunks:
    def test_round_trip(self, store: SQLiteStore) -> None:
        doc = Document(path="docs/a.txt")
        chunk = _chunk(doc, embedding=[0.1, 1e-7, -3.5, 123456.789])
        store.insert_document(doc)
        store.insert_chunk(chunk)

        [(loaded, path)] = store.all_chunks_with_paths()
        assert path == "docs/a.txt"
        assert loaded == chunk

    def test_requires_existing_document(self, store: SQLiteStore) -> None:
        orphan = _chunk(Document(path="never-stored.txt"))
        with pytest.raises(StorageError):
            store.insert_chunk(orphan)
        assert store.corpus_stats().chunk_count == 0

    def test_duplicate_chunk_id_rejected(self, store: SQLiteStore) -> None:
        doc = Document(path="a.txt")
        store.insert_document(doc)
        chunk = _chunk(doc)
        store.insert_chunk(chunk)
        with pytest.raises(StorageError):
            store.insert_chunk(chunk)

    def test_insert_chunks_is_atomic(self, store: SQLiteStore) -> None:
        doc = Document(path="a.txt")
        store.insert_document(doc)
        good = _chunk(doc, 0)
        with pytest.raises(StorageError):
            store.insert_chunks([good, _chunk(doc, 1, id=good.id)])
        assert store.corpus_stats().chunk_count == 0

    def test_save_document_writes_document_and_chunks(self, store: SQLiteStore) -> None:
        doc = Document(path="a.txt")
        store.save_document(doc, [_chunk(doc, 0), _chunk(doc, 1)])
        stats = store.corpus_stats()
        assert (stats.document_count, stats.chunk_count) == (1, 2)

    def test_all_chunks_joins_paths(self, store: SQLiteStore) -> None:
        a, b = Document(path="a.txt"), Document(path="b.txt")
        store.save_document(a, [_chunk(a, 0), _chunk(a, 1)])
        store.save_document(b, [_chunk(b, 0)])
        paths = sorted(p for _, p in store.all_chunks_with_paths())
        assert paths == ["a.txt", "a.txt", "b.txt"]

    def test_cascade_delete(self, store: SQLiteStore) -> None:
        doc = Document(path="a.txt")
        store.save_document(doc, [_chunk(doc, 0), _chunk(doc, 1)])
        with store.engine.begin() as conn:
            conn.execute(text("DELETE FROM documents WHERE id = :id"), {"id": doc.id})
        assert store.corpus_stats().chunk_count == 0

    def test_malformed_embedding_raises_encoding_error(self, store: SQLiteStore) -> None:
        doc = Document(path="a.txt")
        store.save_document(doc, [_chunk(doc)])
        with store.engine.begin() as conn:
            conn.execute(text("UPDATE chunks SET embedding = 'not json'"))
        with pytest.raises(EncodingError):
            store.all_chunks_with_paths()


class TestConcurrency:
    def test_threads_share_one_store(self, store: SQLiteStore) -> None:
        def save(i: int) -> None:
            doc = Document(path=f"doc-{i}.txt")
            store.save_document(doc, [_chunk(doc, idx) for idx in range(5)])
            store.corpus_stats()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(save, range(40)))

        stats = store.corpus_stats()
        assert (stats.document_count, stats.chunk_count) == (40, 200)


class TestCorpusStats:
    def test_empty(self, store: SQLiteStore) -> None:
        stats = store.corpus_stats()
        assert stats.document_count == 0
        assert stats.chunk_count == 0
        assert stats.last_ingested_at is None

    def test_latest_timestamp(self, store: SQLiteStore) -> None:
        old = datetime(2023, 5, 1, tzinfo=timezone.utc)
        new = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        store.insert_document(Document(path="new.txt", created_at=new))
        store.insert_document(Document(path="old.txt", created_at=old))
        assert store.corpus_stats().last_ingested_at == new


class TestEmbeddingEncoding:
    def test_encode_is_json_array(self) -> None:
        assert encode_embedding([1.0, 0.5]) == "[1.0, 0.5]"

    def test_decode_accepts_integers(self) -> None:
        assert decode_embedding("[1, 2.5]") == [1.0, 2.5]

    @pytest.mark.parametrize("raw", ["{}", '["a"]', "[true]", "1.0", "[1.0,"])
    def test_decode_rejects_malformed(self, raw: str) -> None:
        with pytest.raises(EncodingError):
            decode_embedding(raw)

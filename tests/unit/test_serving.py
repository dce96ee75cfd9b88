"""Unit tests for the serving layer."""

from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from local_rag.config import settings
from local_rag.serving.app import app


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(settings, "db_path", str(tmp_path / "api.db"))
    monkeypatch.setattr(settings, "openai_api_key", "")
    monkeypatch.setattr(settings, "local_embedding_dim", 64)
    with TestClient(app) as c:
        yield c


def test_health_endpoint() -> None:
    """GET /health should return 200 with status ok."""
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ingest_query_and_stats(client: TestClient, tmp_path: Path) -> None:
    doc = tmp_path / "rust.txt"
    doc.write_text("Rust is a systems programming language focused on safety and performance.")

    response = client.post("/ingest", json={"paths": [str(doc)], "chunk_size": 64, "overlap": 16})
    assert response.status_code == 200
    assert response.json()["documents_stored"] == 1

    response = client.post("/query", json={"query": "What is Rust?", "top_k": 3})
    assert response.status_code == 200
    body = response.json()
    assert body["results"][0]["document_path"] == str(doc)
    assert "Question: What is Rust?" in body["answer"]

    stats = client.get("/stats").json()
    assert stats["document_count"] == 1
    assert stats["chunk_count"] == 2
    assert stats["last_ingested_at"] is not None


def test_stats_on_empty_store(client: TestClient) -> None:
    assert client.get("/stats").json() == {
        "document_count": 0,
        "chunk_count": 0,
        "last_ingested_at": None,
    }


def test_missing_path_is_404(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/ingest", json={"paths": [str(tmp_path / "missing.txt")]})
    assert response.status_code == 404
    assert "does not exist" in response.json()["detail"]


def test_ingest_requires_paths(client: TestClient) -> None:
    assert client.post("/ingest", json={"paths": []}).status_code == 422


def test_concurrent_ingests(client: TestClient, tmp_path: Path) -> None:
    docs = tmp_path / "docs"
    docs.mkdir()
    files = []
    for i in range(40):
        f = docs / f"doc-{i}.txt"
        f.write_text(f"document number {i} " * 20)
        files.append(f)

    def post(f: Path) -> int:
        return client.post("/ingest", json={"paths": [str(f)], "chunk_size": 64, "overlap": 8}).status_code

    with ThreadPoolExecutor(max_workers=16) as pool:
        statuses = list(pool.map(post, files))

    assert statuses == [200] * 40
    assert client.get("/stats").json()["document_count"] == 40


def test_ingest_root_rejects_outside_paths(
    client: TestClient, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = tmp_path / "allowed"
    root.mkdir()
    inside = root / "ok.txt"
    inside.write_text("allowed content")
    outside = tmp_path / "secret.txt"
    outside.write_text("secret content")
    monkeypatch.setattr(settings, "ingest_root", str(root))

    response = client.post("/ingest", json={"paths": [str(outside)]})
    assert response.status_code == 404
    assert "outside the ingest root" in response.json()["detail"]
    assert client.get("/stats").json()["document_count"] == 0

    response = client.post("/ingest", json={"paths": [str(root / ".." / "secret.txt")]})
    assert response.status_code == 404

    assert client.post("/ingest", json={"paths": [str(inside)]}).status_code == 200

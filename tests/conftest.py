"""Shared pytest configuration and fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from local_rag.ingestion.embedder import LocalHashEmbedder
from local_rag.retrieval.sqlite_store import SQLiteStore


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture()
def db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    # Kept out of tmp_path so directory ingests never pick up the database.
    return tmp_path_factory.mktemp("store") / "data" / "rag.db"


@pytest.fixture()
def store(db_path: Path) -> Iterator[SQLiteStore]:
    with SQLiteStore(db_path) as s:
        yield s


@pytest.fixture()
def embedder() -> LocalHashEmbedder:
    return LocalHashEmbedder(64)

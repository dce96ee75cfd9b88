"""Exception hierarchy for local-rag.

Every error raised by the retrieval pipeline derives from
:class:`LocalRagError` so callers can catch the whole family at once::

    LocalRagError
    +-- PathError           (an input path does not exist)
    +-- DocumentReadError   (a source file could not be read / decoded)
    +-- EmbeddingError      (provider transport / parse failure, count mismatch)
    +-- StorageError        (schema, constraint or I/O failure in the store)
    |   +-- EncodingError   (malformed stored vector data)
    +-- ConfigurationError  (invalid embedder configuration)

Errors carry an optional ``provider_name`` identifying which backend
(``"openai-embeddings"``, ``"sqlite"`` ...) produced them.
"""

from __future__ import annotations


class LocalRagError(Exception):
    """Base exception for all local-rag errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class PathError(LocalRagError):
    """Raised when an ingestion input path does not exist or may not be read."""

    def __init__(self, path: str, message: str | None = None) -> None:
        self.path = path
        super().__init__(message=message or f"Path does not exist: {path}")


class DocumentReadError(LocalRagError):
    """Raised when a source file cannot be read as UTF-8 text."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(message=f"Failed to read {path}: {reason}")


class EmbeddingError(LocalRagError):
    """Raised when an embedder fails or returns the wrong number of vectors."""


class StorageError(LocalRagError):
    """Raised on any store failure (I/O, schema, constraint violation)."""

    def __init__(self, message: str = "Storage operation failed", provider_name: str | None = "sqlite") -> None:
        super().__init__(message=message, provider_name=provider_name)


class EncodingError(StorageError):
    """Raised when a stored embedding cannot be decoded."""


class ConfigurationError(LocalRagError):
    """Raised when a component is constructed with invalid settings."""

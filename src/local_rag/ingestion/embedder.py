"""Embedding backends.

Two implementations of :class:`Embedder` are provided:

1. :class:`LocalHashEmbedder` — offline, deterministic bag-of-words
   hashing.  Weak but fast and reproducible; the default.
2. :class:`OpenAIEmbedder` — calls an OpenAI-compatible ``/embeddings``
   endpoint.  Used when an API key is configured.

Both accept a whole batch at once and return one vector per input, in
input order.  Neither splits a batch nor retries a failed request.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import requests

from local_rag.errors import ConfigurationError, EmbeddingError

if TYPE_CHECKING:
    from local_rag.config import Settings

logger = logging.getLogger(__name__)

_U64_MASK = (1 << 64) - 1


class Embedder(ABC):
    """Maps an ordered batch of strings to an equal-length batch of vectors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier of this backend, used in logs and reports."""
        ...

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one embedding per entry of *texts*, in the same order.

        An empty batch returns ``[]`` without contacting any backend.

        Raises
        ------
        EmbeddingError
            On transport / parse failures or when the backend returns a
            different number of vectors than it was given texts.
        """
        ...

    def embed_query(self, text: str) -> list[float]:
        """Embed a single string as a one-element batch."""
        vectors = self.embed([text])
        if len(vectors) != 1:
            raise EmbeddingError(
                f"Expected 1 embedding, got {len(vectors)}",
                provider_name=self.name,
            )
        return vectors[0]


class LocalHashEmbedder(Embedder):
    """Hashed term-frequency embedder.

    Each whitespace-separated token is hashed over its UTF-8 bytes with
    ``h = h * 31 + byte`` (wrapping at 64 bits) and counted in bucket
    ``h % dimension``.  Colliding tokens share a bucket.

    Parameters
    ----------
    dimension:
        Length of every output vector.
    """

    def __init__(self, dimension: int = 256) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension

    @property
    def name(self) -> str:
        return f"local-hash-embedding-{self.dimension}"

    def embed(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for text in texts:
            vector = [0.0] * self.dimension
            for token in text.split():
                vector[self._bucket(token)] += 1.0
            vectors.append(vector)
        return vectors

    def _bucket(self, token: str) -> int:
        h = 0
        for byte in token.encode("utf-8"):
            h = (h * 31 + byte) & _U64_MASK
        return h % self.dimension


class OpenAIEmbedder(Embedder):
    """Embedder backed by an OpenAI-compatible embeddings API.

    The whole batch is sent in one ``POST <base_url>/embeddings`` request
    carrying ``{"model": ..., "input": [...]}``; the response must hold
    ``{"data": [{"embedding": [...]}, ...]}`` with one entry per input.

    Parameters
    ----------
    api_key:
        Bearer token for the provider.
    model:
        Embedding model identifier.
    base_url:
        API root, e.g. ``https://api.openai.com/v1``.
    timeout:
        Optional per-request timeout in seconds, forwarded to ``requests``.
    session:
        Optional pre-configured ``requests.Session``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        *,
        base_url: str = "https://api.openai.com/v1",
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("An API key is required for remote embeddings", provider_name="openai-embeddings")
        if not model:
            raise ConfigurationError("An embedding model name is required", provider_name="openai-embeddings")
        self._api_key = api_key
        self.model = model
        self._url = f"{base_url.rstrip('/')}/embeddings"
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "openai-embeddings"

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        logger.info("Requesting %d embeddings from %s (model=%s)", len(texts), self._url, self.model)
        try:
            response = self._session.post(
                self._url,
                json={"model": self.model, "input": list(texts)},
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            body = exc.response.text[:200] if exc.response is not None else ""
            raise EmbeddingError(
                f"Embedding request failed with HTTP {status}: {body}",
                provider_name=self.name,
            ) from exc
        except requests.RequestException as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}", provider_name=self.name) from exc

        try:
            payload: Any = response.json()
            vectors = [[float(x) for x in item["embedding"]] for item in payload["data"]]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingError(
                f"Malformed embeddings response: {exc}",
                provider_name=self.name,
            ) from exc

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
                provider_name=self.name,
            )
        return vectors


def get_embedder(config: Settings | None = None) -> Embedder:
    """Return the embedder selected by *config*.

    :class:`OpenAIEmbedder` when an OpenAI API key is configured,
    otherwise :class:`LocalHashEmbedder` with the configured dimension.
    """
    if config is None:
        from local_rag.config import settings as config

    if config.openai_api_key:
        logger.info("Using remote embeddings: %s", config.openai_embedding_model)
        return OpenAIEmbedder(
            config.openai_api_key,
            config.openai_embedding_model,
            base_url=config.openai_base_url,
            timeout=config.openai_timeout,
        )
    return LocalHashEmbedder(config.local_embedding_dim)

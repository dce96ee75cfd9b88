"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Storage
    db_path: str = Field(default="data/rag.db", description="Path to the SQLite database file")

    # Remote embeddings
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key. Leave empty to use the local hash embedder.",
    )
    openai_embedding_model: str = "text-embedding-3-small"
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible embeddings API",
    )
    openai_timeout: float | None = Field(
        default=None,
        description="Per-request timeout in seconds for the remote embedder (None = wait)",
    )

    # Serving
    ingest_root: str | None = Field(
        default=None,
        description="Directory that POST /ingest paths must lie under (None = any path)",
    )

    # Local embeddings
    local_embedding_dim: int = Field(default=256, gt=0)

    # Ingestion / query defaults
    chunk_size: int = Field(default=512, ge=0)
    chunk_overlap: int = Field(default=64, ge=0)
    top_k: int = Field(default=6, ge=0)

    # Logging
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Read by the outer surfaces (CLI, serving, embedder factory) only.
settings = Settings()

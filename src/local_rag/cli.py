"""Command-line interface: ``local-rag ingest | query | stats``."""

from __future__ import annotations

import argparse
import logging
import sys

from local_rag.config import Settings, settings
from local_rag.errors import LocalRagError
from local_rag.ingestion.embedder import get_embedder
from local_rag.ingestion.pipeline import ingest
from local_rag.retrieval.retriever import run_query
from local_rag.retrieval.sqlite_store import SQLiteStore
from local_rag.retrieval.synthesis import format_raw_results, synthesize_answer

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {number}")
    return number


def build_parser(defaults: Settings = settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="local-rag",
        description="Retrieval-augmented search over local text documents",
    )
    parser.add_argument("--db", default=defaults.db_path, help="Path to the SQLite database file")
    parser.add_argument(
        "--openai-api-key",
        default=defaults.openai_api_key,
        help="Use OpenAI embeddings instead of the local hash-based embedder",
    )
    parser.add_argument(
        "--openai-model",
        default=defaults.openai_embedding_model,
        help="OpenAI embedding model (used only with an API key)",
    )
    parser.add_argument("--log-level", default=defaults.log_level, help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)

    p_ingest = sub.add_parser("ingest", help="Ingest documents into the store")
    p_ingest.add_argument("paths", nargs="+", help="Files or directories (walked recursively)")
    p_ingest.add_argument("--chunk-size", type=_non_negative_int, default=defaults.chunk_size, help="Chunk size in characters")
    p_ingest.add_argument("--overlap", type=_non_negative_int, default=defaults.chunk_overlap, help="Overlap in characters")

    p_query = sub.add_parser("query", help="Query the corpus")
    p_query.add_argument("question", help="Natural-language question")
    p_query.add_argument("--top-k", type=_non_negative_int, default=defaults.top_k, help="Number of chunks to retrieve")
    p_query.add_argument("--raw-only", action="store_true", help="Only show raw chunks, no synthesized answer")

    sub.add_parser("stats", help="Show corpus statistics")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = settings.model_copy(
        update={"openai_api_key": args.openai_api_key, "openai_embedding_model": args.openai_model}
    )

    try:
        with SQLiteStore(args.db) as store:
            if args.command == "ingest":
                report = ingest(
                    store,
                    get_embedder(config),
                    args.paths,
                    chunk_size=args.chunk_size,
                    overlap=args.overlap,
                )
                print(
                    f"Ingested {report.documents_stored} documents "
                    f"({report.chunks_stored} chunks, {report.files_skipped} skipped) "
                    f"with {report.embedder}"
                )
            elif args.command == "query":
                results = run_query(store, get_embedder(config), args.question, args.top_k)
                if args.raw_only:
                    print(format_raw_results(results))
                else:
                    print(synthesize_answer(args.question, results))
            elif args.command == "stats":
                stats = store.corpus_stats()
                last = stats.last_ingested_at.isoformat() if stats.last_ingested_at else "(none)"
                print("Corpus Stats")
                print(f"Documents   : {stats.document_count}")
                print(f"Chunks      : {stats.chunk_count}")
                print(f"Last Ingest : {last}")
    except LocalRagError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

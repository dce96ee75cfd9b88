"""Prototype answer synthesis: stitch the top snippets together."""

from __future__ import annotations

from local_rag.retrieval.models import SearchResult

RULE = "─" * 45


def synthesize_answer(question: str, results: list[SearchResult]) -> str:
    """Return a plain-text answer built from *results*.

    No model is involved; each snippet is listed with its source and
    score in rank order.
    """
    lines = [f"Question: {question}", RULE, "(Prototype synthesized answer)", ""]
    if not results:
        lines.append("No relevant context found.")
    for i, r in enumerate(results, 1):
        lines.append(f"[{i}] From {r.document_path}")
        lines.append(f"Score: {r.score:.4f}")
        lines.append(f"Snippet:\n{r.chunk.text.strip()}")
        lines.append("")
    lines.append(RULE)
    lines.append("(Above snippets are the most relevant context chunks.)")
    return "\n".join(lines)


def format_raw_results(results: list[SearchResult]) -> str:
    """Return one block per result with rank, score, file, span and text."""
    lines = [RULE]
    for i, r in enumerate(results, 1):
        lines.append(f"#{i} | score = {r.score:.4f}")
        lines.append(f"File : {r.document_path}")
        lines.append(f"Span : {r.chunk.start_char}..{r.chunk.end_char}")
        lines.append(f"Text :\n{r.chunk.text.strip()}\n")
        lines.append(RULE)
    return "\n".join(lines)

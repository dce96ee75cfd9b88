"""Character-window text chunking with overlap."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TextWindow:
    """One chunk of a document's text.

    ``start_char`` / ``end_char`` form a half-open span counted in
    characters (code points), not bytes.
    """

    start_char: int
    end_char: int
    text: str


def chunk_text(text: str, chunk_size: int = 512, overlap: int = 64) -> list[TextWindow]:
    """Split *text* into overlapping windows of at most *chunk_size* characters.

    Parameters
    ----------
    text:
        Full document text.
    chunk_size:
        Maximum number of characters per window.  ``0`` yields no windows.
    overlap:
        Number of characters shared by consecutive windows.  Values
        ``>= chunk_size`` are accepted and produce a single window.

    Returns
    -------
    list[TextWindow]
        Windows in increasing ``start_char`` order.  Empty text returns
        an empty list.
    """
    if chunk_size < 0 or overlap < 0:
        raise ValueError(
            f"chunk_size ({chunk_size}) and overlap ({overlap}) must be non-negative"
        )

    length = len(text)
    if length == 0 or chunk_size == 0:
        return []

    windows: list[TextWindow] = []
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        windows.append(TextWindow(start, end, text[start:end]))

        if end == length:
            break

        next_start = max(end - overlap, 0)
        # Degenerate overlap: stop rather than loop forever.
        if next_start <= start:
            break
        start = next_start

    return windows

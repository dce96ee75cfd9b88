"""Source discovery and reading."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from local_rag.errors import DocumentReadError, PathError


def collect_files(paths: Iterable[str | Path]) -> list[Path]:
    """Expand *paths* into a flat list of regular files.

    Files are returned as given; directories are walked recursively in
    sorted order.

    Raises
    ------
    PathError
        If any entry of *paths* does not exist.
    """
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            files.append(path)
        elif path.is_dir():
            for root, dirs, names in os.walk(path):
                dirs.sort()
                for name in sorted(names):
                    candidate = Path(root) / name
                    if candidate.is_file():
                        files.append(candidate)
        else:
            raise PathError(str(path))
    return files


def read_text(path: Path) -> str:
    """Read *path* as UTF-8 text."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentReadError(str(path), str(exc)) from exc

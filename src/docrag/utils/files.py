"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

MARKDOWN_SUFFIX = ".md"


def iter_markdown_paths(root: Path) -> Iterator[Path]:
    """Yield markdown files below root in lexical walk order."""
    if root.is_file():
        if root.suffix.lower() == MARKDOWN_SUFFIX:
            yield root
        return
    for child in sorted(root.rglob("*")):
        if child.is_file() and child.name.lower().endswith(MARKDOWN_SUFFIX):
            yield child


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)

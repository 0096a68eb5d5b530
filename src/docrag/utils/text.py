"""Text helpers for embedding input and prompt context."""

from __future__ import annotations

import hashlib
from typing import Iterable

from docrag.models import Document

CONTEXT_HEADER = "Here is some relevant documentation to help answer the question:\n\n"
MAX_CONTEXT_CHARS = 100_000


def truncate_text(text: str, max_chars: int) -> str:
    """Keep only the first `max_chars` characters of text."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]


def digest_text(text: str) -> str:
    """Return the hex SHA256 digest of UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_context_message(
    documents: Iterable[Document], *, max_length: int = MAX_CONTEXT_CHARS
) -> str:
    """Render retrieved documents as a context block for the language model.

    Documents that would push the message past `max_length` are skipped, so a
    later, shorter document can still make it in.
    """
    parts = [CONTEXT_HEADER]
    current = len(CONTEXT_HEADER)
    for doc in documents:
        additional = len(doc.path) + len(doc.content) + 8
        if current + additional > max_length:
            continue
        parts.append(f"From {doc.path}:\n{doc.content}\n\n")
        current += additional
    return "".join(parts)

"""Exceptions raised by the retrieval engine."""

from __future__ import annotations

BODY_SNIPPET_CHARS = 512


class DocRagError(Exception):
    """Base class for all docrag errors."""


class ConfigError(DocRagError):
    """Required configuration is missing or invalid."""


class NetworkError(DocRagError):
    """Transport failure or unexpected status from a remote endpoint."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body[:BODY_SNIPPET_CHARS]
        detail = message
        if status_code is not None:
            detail = f"{message} (status {status_code})"
        if self.body:
            detail = f"{detail}: {self.body}"
        super().__init__(detail)


class ArchiveError(DocRagError):
    """The downloaded payload is not a readable archive."""


class PathTraversalError(ArchiveError):
    """An archive entry resolves outside the extraction directory."""

    def __init__(self, entry: str) -> None:
        self.entry = entry
        super().__init__(f"Archive entry escapes destination: {entry}")


class NotInitializedError(DocRagError):
    """A query was issued before the document cache was loaded."""

    def __init__(self, message: str = "Retrieval service not initialized") -> None:
        super().__init__(message)


class EmbeddingMismatchError(DocRagError):
    """An embedding response does not line up with the submitted inputs."""

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"Expected {expected} embeddings, received {received}")


class PersistenceError(DocRagError):
    """Reading or writing the embeddings snapshot failed."""

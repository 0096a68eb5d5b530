"""Remote embedding API client and batch embedding generation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from docrag.errors import EmbeddingMismatchError, NetworkError
from docrag.models import Document
from docrag.utils.text import truncate_text

DEFAULT_MODEL = "text-embedding-3-small"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_INPUT_CHARS = 25_000
DEFAULT_BATCH_DELAY = 0.01
DEFAULT_TIMEOUT = 30.0
PROGRESS_EVERY_BATCHES = 6

LOGGER = logging.getLogger(__name__)


class EmbeddingRequest(BaseModel):
    model: str
    input: List[str]


class EmbeddingData(BaseModel):
    embedding: List[float]
    index: int


class EmbeddingUsage(BaseModel):
    prompt_tokens: int = 0
    total_tokens: int = 0


class EmbeddingResponse(BaseModel):
    data: List[EmbeddingData]
    usage: EmbeddingUsage = Field(default_factory=EmbeddingUsage)


@dataclass(slots=True)
class EmbeddingConfig:
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model_name: str = DEFAULT_MODEL
    batch_size: int = DEFAULT_BATCH_SIZE
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS
    batch_delay: float = DEFAULT_BATCH_DELAY
    timeout: float = DEFAULT_TIMEOUT


class EmbeddingClient:
    """Thin wrapper around the `/embeddings` endpoint of an OpenAI-compatible API."""

    def __init__(self, config: EmbeddingConfig | None = None, *, http_client: httpx.Client | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._http = http_client or httpx.Client(timeout=self.config.timeout)

    def close(self) -> None:
        self._http.close()

    def create_embeddings(self, texts: Sequence[str]) -> EmbeddingResponse:
        """Embed texts in a single request.

        Inputs longer than ``max_input_chars`` are cut to their prefix. The
        returned ``data`` is ordered to match ``texts`` one to one.
        """
        request = EmbeddingRequest(
            model=self.config.model_name,
            input=[truncate_text(text, self.config.max_input_chars) for text in texts],
        )
        url = f"{self.config.base_url.rstrip('/')}/embeddings"
        try:
            response = self._http.post(
                url,
                json=request.model_dump(),
                headers={"Authorization": f"Bearer {self.config.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Embedding request failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise NetworkError(
                "Embedding request rejected", status_code=response.status_code, body=response.text
            )

        try:
            result = EmbeddingResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise NetworkError(f"Malformed embedding response: {exc}") from exc

        ordered = sorted(result.data, key=lambda item: item.index)
        if [item.index for item in ordered] != list(range(len(request.input))):
            raise EmbeddingMismatchError(len(request.input), len(result.data))

        LOGGER.debug(
            "Embedded %d inputs (prompt tokens: %d, total tokens: %d)",
            len(ordered),
            result.usage.prompt_tokens,
            result.usage.total_tokens,
        )
        return EmbeddingResponse(data=ordered, usage=result.usage)

    def embed_query(self, text: str) -> List[float]:
        """Convenience wrapper for single-query embedding."""
        response = self.create_embeddings([text])
        if not response.data:
            raise EmbeddingMismatchError(1, 0)
        return response.data[0].embedding


def generate_embeddings(
    client: EmbeddingClient,
    documents: Sequence[Document],
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Populate `embedding` on every document in place.

    Batches are sent one after another. Any failing batch aborts the pass;
    documents from earlier batches keep the embeddings they already received.
    """
    batch_size = max(client.config.batch_size, 1)
    total = len(documents)
    for start in range(0, total, batch_size):
        end = min(start + batch_size, total)
        if (start // batch_size) % PROGRESS_EVERY_BATCHES == 0:
            LOGGER.info("Generating embeddings for documents %d-%d out of %d", start, end, total)

        batch = documents[start:end]
        response = client.create_embeddings([doc.content for doc in batch])
        for doc, item in zip(batch, response.data):
            doc.embedding = item.embedding

        if end < total:
            sleep(client.config.batch_delay)

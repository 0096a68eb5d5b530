"""Semantic search over the document cache."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

import numpy as np

from docrag.embedding.client import EmbeddingClient
from docrag.errors import NotInitializedError
from docrag.index.storage import VectorCache
from docrag.models import Document
from docrag.utils.text import digest_text

DEFAULT_TOP_K = 3
DEFAULT_SHARDS = 16

LOGGER = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between a and b.

    Zero-magnitude, empty or mismatched vectors score 0.
    """
    left = np.asarray(a, dtype="float64")
    right = np.asarray(b, dtype="float64")
    if left.size == 0 or left.shape != right.shape:
        return 0.0
    norm = float(np.linalg.norm(left)) * float(np.linalg.norm(right))
    if norm == 0.0:
        return 0.0
    return float(np.dot(left, right) / norm)


@dataclass(slots=True)
class ScoredDocument:
    document: Document
    score: float


def select_top_k(scored: Iterable[ScoredDocument], k: int) -> List[ScoredDocument]:
    """Highest scores first; equal scores are ordered by path."""
    ranked = sorted(scored, key=lambda item: (-item.score, item.document.path))
    return ranked[: max(k, 0)]


class QueryEmbeddingCache:
    """Query digest -> embedding map split into independently locked shards."""

    def __init__(self, shards: int = DEFAULT_SHARDS) -> None:
        self._shards: List[Dict[str, List[float]]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]

    def _shard(self, digest: str) -> int:
        return int(digest[:8], 16) % len(self._shards)

    def get(self, digest: str) -> List[float] | None:
        index = self._shard(digest)
        with self._locks[index]:
            return self._shards[index].get(digest)

    def put(self, digest: str, embedding: List[float]) -> None:
        index = self._shard(digest)
        with self._locks[index]:
            self._shards[index][digest] = embedding

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)


class Retriever:
    """Embeds queries and ranks cached documents against them."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        cache: VectorCache,
        *,
        top_k: int = DEFAULT_TOP_K,
        query_cache: QueryEmbeddingCache | None = None,
    ) -> None:
        self.embedder = embedder
        self.cache = cache
        self.top_k = top_k
        self.query_cache = query_cache if query_cache is not None else QueryEmbeddingCache()

    def embed_query(self, query: str) -> List[float]:
        digest = digest_text(query)
        cached = self.query_cache.get(digest)
        if cached is not None:
            LOGGER.debug("Query embedding cache hit for %s", digest[:12])
            return cached
        embedding = self.embedder.embed_query(query)
        self.query_cache.put(digest, embedding)
        return embedding

    def rank(self, query_embedding: Sequence[float]) -> List[ScoredDocument]:
        scored = [
            ScoredDocument(document=doc, score=cosine_similarity(query_embedding, doc.embedding))
            for doc in self.cache.list()
        ]
        return select_top_k(scored, self.top_k)

    def search(self, query: str) -> List[ScoredDocument]:
        if not self.cache.is_loaded():
            raise NotInitializedError()
        return self.rank(self.embed_query(query))

    def find_relevant_documents(self, query: str) -> List[Document]:
        return [item.document for item in self.search(query)]

"""Retrieval service wiring used by the CLI and web app."""

from __future__ import annotations

from typing import List

import httpx

from docrag.config import AppConfig
from docrag.embedding.client import EmbeddingClient, EmbeddingConfig
from docrag.index.indexer import Indexer, IndexStats
from docrag.index.search import Retriever, ScoredDocument
from docrag.index.storage import VectorCache
from docrag.models import Document


class RetrievalService:
    """Initialize once, then answer `find_relevant_documents` queries."""

    def __init__(self, indexer: Indexer, retriever: Retriever, http_client: httpx.Client | None = None) -> None:
        self.indexer = indexer
        self.retriever = retriever
        self._http = http_client

    @classmethod
    def from_config(cls, config: AppConfig, *, http_client: httpx.Client | None = None) -> "RetrievalService":
        http = http_client or httpx.Client(timeout=config.timeout)
        embedder = EmbeddingClient(
            EmbeddingConfig(
                api_key=config.api_key,
                base_url=config.api_base_url,
                model_name=config.model_name,
                batch_size=config.batch_size,
                max_input_chars=config.max_input_chars,
                batch_delay=config.batch_delay,
                timeout=config.timeout,
            ),
            http_client=http,
        )
        cache = VectorCache(config.cache_path)
        indexer = Indexer(config.repo, cache, embedder, http)
        retriever = Retriever(embedder, cache, top_k=config.top_k)
        return cls(indexer, retriever, http)

    @property
    def cache(self) -> VectorCache:
        return self.retriever.cache

    def initialize(self) -> IndexStats:
        return self.indexer.initialize()

    def search(self, query: str) -> List[ScoredDocument]:
        return self.retriever.search(query)

    def find_relevant_documents(self, query: str) -> List[Document]:
        return self.retriever.find_relevant_documents(query)

    def close(self) -> None:
        if self._http is not None:
            self._http.close()

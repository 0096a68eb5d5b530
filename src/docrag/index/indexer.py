"""One-shot corpus initialization."""

from __future__ import annotations

import enum
import logging
import shutil
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path

import httpx

from docrag.embedding.client import EmbeddingClient, generate_embeddings
from docrag.errors import PersistenceError
from docrag.index.storage import VectorCache
from docrag.ingestion.archive import archive_root, collect_documents, extract_archive, fetch_archive
from docrag.models import RepoConfig

LOGGER = logging.getLogger(__name__)


class InitState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class IndexStats:
    documents: int = 0
    source: str = ""
    persisted: bool = False


class Indexer:
    """Loads the document cache exactly once per process.

    The first caller of `initialize` does the work; concurrent callers block
    until it finishes and then see the same stats or the same exception.
    A failed run is not retried.
    """

    def __init__(
        self,
        repo: RepoConfig,
        cache: VectorCache,
        embedder: EmbeddingClient,
        http_client: httpx.Client,
    ) -> None:
        self.repo = repo
        self.cache = cache
        self.embedder = embedder
        self.http_client = http_client
        self._cond = threading.Condition()
        self._state = InitState.NOT_STARTED
        self._stats: IndexStats | None = None
        self._error: BaseException | None = None

    @property
    def state(self) -> InitState:
        with self._cond:
            return self._state

    def initialize(self) -> IndexStats:
        with self._cond:
            if self._state is InitState.NOT_STARTED:
                self._state = InitState.RUNNING
                owner = True
            else:
                owner = False
                while self._state is InitState.RUNNING:
                    self._cond.wait()

        if owner:
            stats: IndexStats | None = None
            error: BaseException | None = None
            try:
                stats = self._run()
                LOGGER.info("Successfully initialized %d documents (%s)", stats.documents, stats.source)
            except Exception as exc:
                error = exc
                LOGGER.error("Failed to initialize retrieval cache: %s", exc)
            with self._cond:
                self._stats = stats
                self._error = error
                self._state = InitState.FAILED if error else InitState.SUCCEEDED
                self._cond.notify_all()

        with self._cond:
            if self._stats is None:
                raise self._error
            return self._stats

    def _run(self) -> IndexStats:
        warm = self._warm_start()
        if warm is not None:
            return warm
        return self._cold_start()

    def _warm_start(self) -> IndexStats | None:
        try:
            count = self.cache.load_from_disk()
        except PersistenceError as exc:
            LOGGER.warning("Failed to load cache from disk: %s", exc)
            return None
        if not count:
            return None
        LOGGER.info("Loaded %d documents from %s", count, self.cache.snapshot_path)
        self.cache.set_loaded()
        return IndexStats(documents=len(self.cache), source="snapshot", persisted=True)

    def _cold_start(self) -> IndexStats:
        data = fetch_archive(self.repo, self.http_client)
        scratch = Path(tempfile.mkdtemp(prefix="docrag-"))
        try:
            extract_archive(data, scratch)
            documents = collect_documents(archive_root(self.repo, scratch))
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

        generate_embeddings(self.embedder, documents)
        for document in documents:
            self.cache.store(document)
        self.cache.set_loaded()

        persisted = True
        try:
            self.cache.save_to_disk()
        except PersistenceError as exc:
            persisted = False
            LOGGER.warning("Failed to save cache to disk: %s", exc)
        return IndexStats(documents=len(documents), source="archive", persisted=persisted)

"""In-memory document vector cache with a JSON snapshot."""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from docrag.errors import PersistenceError
from docrag.models import Document
from docrag.utils.files import ensure_parent

LOGGER = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class VectorCache:
    """Documents keyed by path, plus a `loaded` flag guarding queries."""

    def __init__(self, snapshot_path: Path) -> None:
        self.snapshot_path = Path(snapshot_path)
        self._lock = ReadWriteLock()
        self._documents: Dict[str, Document] = {}
        self._loaded = False

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._documents)

    def store(self, document: Document) -> None:
        with self._lock.write():
            self._documents[document.path] = document

    def get(self, path: str) -> Tuple[Document | None, bool]:
        with self._lock.read():
            document = self._documents.get(path)
        return document, document is not None

    def list(self) -> List[Document]:
        with self._lock.read():
            return list(self._documents.values())

    def is_loaded(self) -> bool:
        with self._lock.read():
            return self._loaded

    def set_loaded(self) -> None:
        with self._lock.write():
            self._loaded = True

    def clear(self) -> None:
        with self._lock.write():
            self._documents = {}
            self._loaded = False

    def save_to_disk(self) -> None:
        """Write every document to the snapshot file, creating its directory."""
        with self._lock.read():
            payload = {path: doc.to_dict() for path, doc in self._documents.items()}
        try:
            ensure_parent(self.snapshot_path)
            with self.snapshot_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle)
        except OSError as exc:
            raise PersistenceError(f"Failed to write snapshot {self.snapshot_path}: {exc}") from exc
        LOGGER.debug("Saved %d documents to %s", len(payload), self.snapshot_path)

    def load_from_disk(self) -> int:
        """Merge documents from the snapshot file and return how many were read.

        A missing snapshot is not an error and loads nothing.
        """
        if not self.snapshot_path.exists():
            return 0
        try:
            with self.snapshot_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            if not isinstance(payload, dict):
                raise ValueError("snapshot root is not an object")
            documents: Dict[str, Document] = {}
            for path, item in payload.items():
                if not isinstance(item, dict):
                    raise ValueError(f"snapshot entry {path!r} is not an object")
                documents[path] = Document.from_dict(item)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(f"Failed to read snapshot {self.snapshot_path}: {exc}") from exc

        with self._lock.write():
            self._documents.update(documents)
        return len(documents)

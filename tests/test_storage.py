"""Tests for VectorCache and ReadWriteLock."""

from __future__ import annotations

import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

from docrag.errors import PersistenceError
from docrag.index.storage import ReadWriteLock, VectorCache
from docrag.models import Document


@pytest.fixture
def cache(tmp_path: Path) -> VectorCache:
    """Create an empty cache with a snapshot under tmp_path."""
    return VectorCache(tmp_path / "snapshots" / "embeddings-cache.json")


def _doc(path: str, content: str = "text", embedding=None) -> Document:
    return Document(
        path=path,
        content=content,
        embedding=list(embedding or [0.1, 0.2, 0.3]),
        modified=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestStoreAndGet:
    """Test upsert and lookup by path."""

    def test_store_then_get(self, cache: VectorCache) -> None:
        """Should return the stored document."""
        doc = _doc("a.md")
        cache.store(doc)

        found, ok = cache.get("a.md")

        assert ok is True
        assert found == doc

    def test_get_missing(self, cache: VectorCache) -> None:
        """Should report missing paths."""
        found, ok = cache.get("missing.md")

        assert ok is False
        assert found is None

    def test_store_overwrites_same_path(self, cache: VectorCache) -> None:
        """A later store with the same path replaces the entry."""
        cache.store(_doc("a.md", content="old"))
        newer = _doc("a.md", content="new")
        cache.store(newer)

        found, _ = cache.get("a.md")

        assert found == newer
        assert len(cache) == 1

    def test_list_is_a_copy(self, cache: VectorCache) -> None:
        """Mutating the returned list does not touch the cache."""
        cache.store(_doc("a.md"))
        cache.store(_doc("b.md"))

        docs = cache.list()
        docs.clear()

        assert {doc.path for doc in cache.list()} == {"a.md", "b.md"}


class TestLoadedFlag:
    """Test loaded flag transitions."""

    def test_starts_not_loaded(self, cache: VectorCache) -> None:
        """A fresh cache is not loaded."""
        assert cache.is_loaded() is False

    def test_set_loaded(self, cache: VectorCache) -> None:
        """set_loaded flips the flag."""
        cache.set_loaded()

        assert cache.is_loaded() is True

    def test_clear_resets(self, cache: VectorCache) -> None:
        """clear removes documents and resets loaded."""
        cache.store(_doc("a.md"))
        cache.set_loaded()

        cache.clear()

        assert cache.list() == []
        assert cache.is_loaded() is False


class TestPersistence:
    """Test JSON snapshot save and load."""

    def test_save_creates_directory(self, cache: VectorCache) -> None:
        """Should create the snapshot directory when absent."""
        cache.store(_doc("a.md"))

        cache.save_to_disk()

        assert cache.snapshot_path.exists()

    def test_snapshot_format(self, cache: VectorCache) -> None:
        """Snapshot maps each path to its serialized document."""
        cache.store(_doc("guide/a.md", content="Alpha", embedding=[1.0, 0.0]))
        cache.save_to_disk()

        payload = json.loads(cache.snapshot_path.read_text(encoding="utf-8"))

        assert payload == {
            "guide/a.md": {
                "path": "guide/a.md",
                "content": "Alpha",
                "embedding": [1.0, 0.0],
                "modified": "2024-01-01T00:00:00+00:00",
            }
        }

    def test_round_trip(self, cache: VectorCache) -> None:
        """A fresh cache reloads identical documents."""
        docs = [
            _doc("a.md", content="Alpha ü", embedding=[0.123456789, -1.5, 3e-8]),
            _doc("b/c.md", content="Gamma", embedding=[0.0, 0.0, 1.0]),
        ]
        for doc in docs:
            cache.store(doc)
        cache.save_to_disk()

        fresh = VectorCache(cache.snapshot_path)
        count = fresh.load_from_disk()

        assert count == 2
        for doc in docs:
            found, ok = fresh.get(doc.path)
            assert ok
            assert found.path == doc.path
            assert found.content == doc.content
            assert found.embedding == doc.embedding

    def test_load_does_not_set_loaded(self, cache: VectorCache) -> None:
        """Loading documents leaves marking readiness to the caller."""
        cache.store(_doc("a.md"))
        cache.save_to_disk()
        fresh = VectorCache(cache.snapshot_path)

        fresh.load_from_disk()

        assert fresh.is_loaded() is False

    def test_load_missing_file_is_noop(self, cache: VectorCache) -> None:
        """A missing snapshot loads nothing without error."""
        assert cache.load_from_disk() == 0
        assert cache.list() == []

    def test_load_corrupt_file(self, cache: VectorCache) -> None:
        """Undecodable snapshots raise PersistenceError."""
        cache.snapshot_path.parent.mkdir(parents=True)
        cache.snapshot_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            cache.load_from_disk()

    def test_load_wrong_shape(self, cache: VectorCache) -> None:
        """A snapshot that is not an object raises PersistenceError."""
        cache.snapshot_path.parent.mkdir(parents=True)
        cache.snapshot_path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(PersistenceError):
            cache.load_from_disk()

    @pytest.mark.parametrize("entry", [None, "oops", 3, ["a.md"]])
    def test_load_non_object_entry(self, cache: VectorCache, entry: object) -> None:
        """An entry that is not an object raises PersistenceError and loads nothing."""
        cache.snapshot_path.parent.mkdir(parents=True)
        cache.snapshot_path.write_text(json.dumps({"a.md": entry}), encoding="utf-8")

        with pytest.raises(PersistenceError):
            cache.load_from_disk()
        assert cache.list() == []

    def test_save_failure(self, tmp_path: Path) -> None:
        """Unwritable snapshot locations raise PersistenceError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        cache = VectorCache(blocker / "embeddings-cache.json")
        cache.store(_doc("a.md"))

        with pytest.raises(PersistenceError):
            cache.save_to_disk()


class TestReadWriteLock:
    """Test reader/writer exclusion."""

    def test_readers_share(self) -> None:
        """Two readers can hold the lock at the same time."""
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=2)

        def reader() -> None:
            with lock.read():
                both_inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert not both_inside.broken

    def test_writer_excludes_readers(self) -> None:
        """A reader waits while a writer holds the lock."""
        lock = ReadWriteLock()
        events: list[str] = []
        writer_in = threading.Event()

        def writer() -> None:
            with lock.write():
                writer_in.set()
                time.sleep(0.05)
                events.append("write-done")

        def reader() -> None:
            writer_in.wait()
            with lock.read():
                events.append("read")

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_concurrent_stores(self, cache: VectorCache) -> None:
        """Concurrent writers never lose updates."""

        def writer(offset: int) -> None:
            for i in range(50):
                cache.store(_doc(f"{offset}-{i}.md"))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert len(cache) == 200

"""Tests for the bounded recent-activity cache."""

from __future__ import annotations

from pathlib import Path

import pytest

from docledger.core.record_cache import RecordCache
from docledger.db.database import Database


def fp(n: int) -> str:
    return "0x" + format(n, "064x")


@pytest.fixture(params=["memory", "sqlite"])
def cache_factory(request, tmp_path: Path):
    databases = []

    def _make(capacity: int = 5) -> RecordCache:
        if request.param == "memory":
            return RecordCache(None, capacity=capacity)
        db = Database(tmp_path / "recent.db")
        databases.append(db)
        return RecordCache(db, capacity=capacity)

    yield _make
    for db in databases:
        db.close()


class TestRecordCache:
    def test_most_recent_first(self, cache_factory):
        cache = cache_factory()
        cache.record_success(fp(1), "First")
        cache.record_success(fp(2), "Second")
        assert [e.label for e in cache.list()] == ["Second", "First"]

    def test_oldest_evicted_at_capacity(self, cache_factory):
        cache = cache_factory()
        for n in range(1, 7):
            cache.record_success(fp(n), f"Doc {n}")

        entries = cache.list()
        assert len(entries) == 5
        assert [e.fingerprint for e in entries] == [fp(n) for n in range(6, 1, -1)]
        assert fp(1) not in {e.fingerprint for e in entries}

    def test_clear(self, cache_factory):
        cache = cache_factory()
        cache.record_success(fp(1), "Doc")
        cache.clear()
        assert cache.list() == []

    def test_empty_label_kept_as_empty(self, cache_factory):
        cache = cache_factory()
        cache.record_success(fp(1), "")
        assert cache.list()[0].label == ""


class TestPersistence:
    def test_survives_restart(self, tmp_path: Path):
        path = tmp_path / "recent.db"
        with Database(path) as db:
            RecordCache(db).record_success(fp(7), "Jane Doe")

        with Database(path) as db:
            entries = RecordCache(db).list()
        assert [(e.fingerprint, e.label) for e in entries] == [(fp(7), "Jane Doe")]

    def test_storage_failure_is_not_fatal(self, tmp_path: Path):
        db = Database(tmp_path / "recent.db")
        cache = RecordCache(db)
        db.connection.execute("DROP TABLE recent_activity")

        cache.record_success(fp(1), "Doc")
        assert cache.list() == []
        db.close()

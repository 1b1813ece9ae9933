"""Recent activity -- a bounded, local-only history of successful adds."""

from __future__ import annotations

import sqlite3
from collections import deque
from datetime import datetime, timezone

from docledger.db.database import Database
from docledger.db.repositories import RecentActivityRepository
from docledger.models.activity import RecentActivityEntry
from docledger.models.fingerprint import Fingerprint
from docledger.utils.constants import RECENT_ACTIVITY_CAPACITY
from docledger.utils.logger import get_logger

logger = get_logger("core.record_cache")


class RecordCache:
    """FIFO of the last ``capacity`` successful adds, most recent first.

    Persisted in the local SQLite database when one is given, otherwise kept
    in memory for the life of the process. Storage failures are logged and
    ignored: losing this history is never an error for anything else.
    """

    def __init__(self, database: Database | None = None, capacity: int = RECENT_ACTIVITY_CAPACITY) -> None:
        """Initialize the cache.

        Args:
            database: Local database for persistence, or None for memory only.
            capacity: Maximum number of entries kept (oldest evicted first).
        """
        self._database = database
        self._capacity = max(1, capacity)
        self._memory: deque[RecentActivityEntry] = deque(maxlen=self._capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def record_success(self, fingerprint: Fingerprint | str, label: str) -> None:
        """Remember a successful add, evicting the oldest entry when full."""
        entry = RecentActivityEntry(
            fingerprint=str(fingerprint),
            label=label or "",
            created_at=datetime.now(timezone.utc),
        )
        if self._database is None:
            self._memory.appendleft(entry)
            return

        try:
            self._repository().append(entry.fingerprint, entry.label, self._capacity, entry.created_at)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Could not save recent activity: %s", e)

    def list(self) -> list[RecentActivityEntry]:
        """Return the remembered entries, most recent first."""
        if self._database is None:
            return list(self._memory)

        try:
            return self._repository().list_recent(self._capacity)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Could not load recent activity: %s", e)
            return []

    def clear(self) -> None:
        """Forget every entry."""
        self._memory.clear()
        if self._database is None:
            return
        try:
            self._repository().clear()
        except (sqlite3.Error, OSError) as e:
            logger.warning("Could not clear recent activity: %s", e)

    def _repository(self) -> RecentActivityRepository:
        assert self._database is not None
        return RecentActivityRepository(self._database.connection)

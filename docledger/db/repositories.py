"""Data access layer -- repositories for recent activity and run history."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from docledger.models.activity import RecentActivityEntry
from docledger.models.verification import BatchReport
from docledger.utils.logger import get_logger

logger = get_logger("db.repositories")


class RecentActivityRepository:
    """Bounded FIFO of successful adds in the ``recent_activity`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize with an active database connection.

        Args:
            connection: SQLite connection (with Row factory enabled).
        """
        self._conn = connection

    def append(self, fingerprint: str, label: str, capacity: int, created_at: datetime | None = None) -> None:
        """Insert an entry and evict the oldest rows beyond ``capacity``."""
        timestamp = (created_at or datetime.now(timezone.utc)).isoformat()
        try:
            self._conn.execute(
                "INSERT INTO recent_activity (fingerprint, label, created_at) VALUES (?, ?, ?)",
                (fingerprint, label, timestamp),
            )
            self._conn.execute(
                """DELETE FROM recent_activity WHERE id NOT IN (
                       SELECT id FROM recent_activity ORDER BY id DESC LIMIT ?
                   )""",
                (capacity,),
            )
            self._conn.commit()
        except sqlite3.Error:
            self._conn.rollback()
            raise

    def list_recent(self, limit: int) -> list[RecentActivityEntry]:
        """Return up to ``limit`` entries, most recent first."""
        cursor = self._conn.execute(
            "SELECT fingerprint, label, created_at FROM recent_activity ORDER BY id DESC LIMIT ?",
            (limit,),
        )
        return [self._row_to_entry(row) for row in cursor.fetchall()]

    def clear(self) -> None:
        self._conn.execute("DELETE FROM recent_activity")
        self._conn.commit()

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> RecentActivityEntry:
        try:
            created_at = datetime.fromisoformat(row["created_at"])
        except (TypeError, ValueError):
            created_at = datetime.fromtimestamp(0, tz=timezone.utc)
        return RecentActivityEntry(
            fingerprint=row["fingerprint"],
            label=row["label"] or "",
            created_at=created_at,
        )


class VerificationRunRepository:
    """History of batch verification runs in the ``verification_runs`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def record_run(self, report: BatchReport) -> int:
        """Persist the summary of a finished batch run.

        Returns:
            The database ID of the run.
        """
        cursor = self._conn.execute(
            """INSERT INTO verification_runs
                   (source, total, valid, invalid, errors, aggregate_status,
                    cancelled, started_at, completed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                report.source,
                report.stats.total,
                report.stats.valid,
                report.stats.invalid,
                report.stats.errors,
                report.aggregate_status.value,
                int(report.cancelled),
                report.started_at.isoformat(),
                report.completed_at.isoformat() if report.completed_at else None,
            ),
        )
        self._conn.commit()
        return int(cursor.lastrowid)

    def get_recent_runs(self, limit: int = 10) -> list[dict]:
        """Return the latest runs as plain dicts, newest first."""
        cursor = self._conn.execute(
            "SELECT * FROM verification_runs ORDER BY id DESC LIMIT ?", (limit,)
        )
        return [dict(row) for row in cursor.fetchall()]

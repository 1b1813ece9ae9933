"""SQLite database for local-only state: recent activity and run history."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from docledger.utils.constants import DEFAULT_DB_FILENAME
from docledger.utils.logger import get_logger

logger = get_logger("db.database")

SCHEMA_VERSION = 1

CREATE_TABLES_SQL = """
-- Recent activity: successful adds remembered for user recall (bounded)
CREATE TABLE IF NOT EXISTS recent_activity (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fingerprint TEXT NOT NULL,
    label TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);

-- Verification runs: logs each batch verification run
CREATE TABLE IF NOT EXISTS verification_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT NOT NULL,
    total INTEGER DEFAULT 0,
    valid INTEGER DEFAULT 0,
    invalid INTEGER DEFAULT 0,
    errors INTEGER DEFAULT 0,
    aggregate_status TEXT NOT NULL,
    cancelled INTEGER DEFAULT 0,
    started_at TEXT NOT NULL,
    completed_at TEXT
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_verification_runs_started ON verification_runs(started_at);
"""


class Database:
    """SQLite database manager for DocLedger.

    Handles connection management, schema creation, and migrations. The
    database only ever holds local convenience state; nothing here is read
    from or written back to the registry.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file. If None, uses
                the default filename in the current directory.
        """
        self._db_path = Path(db_path) if db_path else Path(DEFAULT_DB_FILENAME)
        self._connection: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        """Open a connection to the database and ensure the schema exists.

        Returns:
            Active SQLite connection.
        """
        if self._connection is not None:
            return self._connection

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Batch workers never touch the database; only the calling thread writes.
        self._connection = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA journal_mode=WAL")

        self._ensure_schema()
        logger.debug("Database connected: %s", self._db_path)
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active connection, connecting if necessary."""
        if self._connection is None:
            return self.connect()
        return self._connection

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and run migrations if needed."""
        conn = self._connection
        if conn is None:
            return

        conn.executescript(CREATE_TABLES_SQL)

        cursor = conn.execute("SELECT COUNT(*) FROM schema_version")
        count = cursor.fetchone()[0]

        if count == 0:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info("Database schema created (version %d)", SCHEMA_VERSION)
        else:
            cursor = conn.execute("SELECT version FROM schema_version")
            current_version = cursor.fetchone()[0]
            if current_version < SCHEMA_VERSION:
                self._migrate(current_version, SCHEMA_VERSION)

    def _migrate(self, from_version: int, to_version: int) -> None:
        """Run database migrations between versions."""
        logger.info("Migrating database from v%d to v%d", from_version, to_version)
        conn = self._connection
        if not conn:
            return

        conn.execute("UPDATE schema_version SET version = ?", (to_version,))
        conn.commit()

    def __enter__(self) -> Database:
        """Open the database connection for use as a context manager."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the database connection when exiting the context."""
        self.close()

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional

from .migrations import MIGRATIONS, Migration

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_utc(dt: datetime) -> str:
    # Fixed-width so lexical order matches time order in SQL comparisons.
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


class Database:
    """One SQLite connection with an explicit open/close lifecycle.

    All access goes through ``transaction()`` or ``read()``, which serialise
    on a re-entrant lock so the connection can be shared across threads.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        migrations: Optional[list[Migration]] = None,
        clock: Clock = utc_now,
    ):
        self.db_path = db_path
        self.migrations = MIGRATIONS if migrations is None else migrations
        self.clock = clock
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def open(self) -> "Database":
        with self._lock:
            if self._conn is not None:
                return self
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            self._conn = conn
            self._migrate()
            logger.info(f"SQLite database opened at {self.db_path}")
            return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.info("Database connection closed")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def now_iso(self) -> str:
        return iso_utc(self.clock())

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Database is not open: {self.db_path}")
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block in one write transaction; roll back on any exception."""
        with self._lock:
            conn = self._require_conn()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                # A failed COMMIT (deferred constraint, SQLITE_BUSY) leaves the transaction open.
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            yield self._require_conn()

    def applied_migrations(self) -> list[str]:
        with self.read() as conn:
            rows = conn.execute("SELECT name FROM _migrations ORDER BY id ASC").fetchall()
        return [str(r["name"]) for r in rows]

    def _migrate(self) -> None:
        conn = self._require_conn()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations(
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              name TEXT NOT NULL UNIQUE,
              applied_at TEXT NOT NULL
            )
            """
        )
        applied = {str(r["name"]) for r in conn.execute("SELECT name FROM _migrations").fetchall()}

        for migration in self.migrations:
            if migration.name in applied:
                continue
            # executescript() commits implicitly, so run statements one by one
            # to keep each migration and its bookkeeping row in one transaction.
            with self.transaction() as tx:
                for statement in _split_statements(migration.sql):
                    tx.execute(statement)
                tx.execute(
                    "INSERT INTO _migrations(name, applied_at) VALUES(?, ?)",
                    (migration.name, self.now_iso()),
                )
            logger.info(f"Applied migration: {migration.name}")


def _split_statements(sql: str) -> list[str]:
    statements: list[str] = []
    buf = ""
    for line in sql.splitlines(keepends=True):
        buf += line
        if sqlite3.complete_statement(buf):
            if buf.strip():
                statements.append(buf.strip())
            buf = ""
    if buf.strip():
        statements.append(buf.strip())
    return statements

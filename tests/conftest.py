"""Pytest fixtures for memvault tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from memvault.db import Database
from memvault.memory import ConversationLog, HashingEmbeddingClient, SqliteVectorStore


class FakeClock:
    """Settable UTC clock; optionally advances by ``step`` on every read."""

    def __init__(self, start: datetime, step: timedelta = timedelta(0)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock():
    """Clock starting at 2026-02-12 10:00 UTC that ticks one second per read."""
    return FakeClock(datetime(2026, 2, 12, 10, 0, 0, tzinfo=timezone.utc), step=timedelta(seconds=1))


@pytest.fixture
def temp_vault(tmp_path) -> Path:
    """Create a temporary vault directory.

    Args:
        tmp_path: pytest's built-in temporary directory fixture

    Returns:
        Path to temporary vault root
    """
    vault_root = tmp_path / "vault"
    vault_root.mkdir()
    return vault_root


@pytest.fixture
def db(tmp_path, clock):
    """Open a migrated SQLite database under tmp_path; closed after the test."""
    database = Database(tmp_path / "data" / "memvault.db", clock=clock).open()
    yield database
    database.close()


@pytest.fixture
def embedder():
    return HashingEmbeddingClient(256)


@pytest.fixture
def store(db):
    return SqliteVectorStore(db, dim=256)


@pytest.fixture
def conversations(db):
    return ConversationLog(db)

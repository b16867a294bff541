from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import timedelta

from memvault.db import Database, iso_utc


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class HeartbeatRecord:
    id: int
    content_hash: str
    content: str
    delivered: bool
    created_at: str


class HeartbeatLog:
    """Durable, append-only record of heartbeat evaluations.

    ``is_duplicate`` looks back over a rolling window (24h by default) using
    the database clock, so suppression survives restarts.
    """

    def __init__(self, db: Database, *, window: timedelta = timedelta(hours=24)):
        if window <= timedelta(0):
            raise ValueError("dedup window must be positive")
        self.db = db
        self.window = window

    def is_duplicate(self, digest: str) -> bool:
        cutoff = iso_utc(self.db.clock() - self.window)
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT id FROM heartbeat_log WHERE content_hash = ? AND created_at > ? LIMIT 1",
                (digest, cutoff),
            ).fetchone()
        return row is not None

    def record(self, digest: str, content: str, delivered: bool) -> HeartbeatRecord:
        created_at = self.db.now_iso()
        with self.db.transaction() as conn:
            cur = conn.execute(
                "INSERT INTO heartbeat_log(content_hash, content, delivered, created_at) VALUES(?, ?, ?, ?)",
                (digest, content, 1 if delivered else 0, created_at),
            )
        return HeartbeatRecord(
            id=int(cur.lastrowid),
            content_hash=digest,
            content=content,
            delivered=delivered,
            created_at=created_at,
        )

    def history(self, limit: int = 20) -> list[HeartbeatRecord]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM heartbeat_log ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [
            HeartbeatRecord(
                id=int(r["id"]),
                content_hash=str(r["content_hash"]),
                content=str(r["content"]),
                delivered=bool(r["delivered"]),
                created_at=str(r["created_at"]),
            )
            for r in rows
        ]

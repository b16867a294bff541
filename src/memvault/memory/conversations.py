from __future__ import annotations

from typing import Optional

from memvault.db import Database

from .models import ConversationTurn, Role

_ROLES = ("user", "assistant")


def _row_to_turn(row) -> ConversationTurn:
    return ConversationTurn(
        id=int(row["id"]),
        chat_scope=str(row["chat_scope"]),
        role=row["role"],
        content=str(row["content"]),
        created_at=str(row["created_at"]),
    )


class ConversationLog:
    """Append-only log of conversation turns, partitioned by chat scope."""

    def __init__(self, db: Database):
        self.db = db

    def append(self, chat_scope: str, role: Role, content: str) -> ConversationTurn:
        if role not in _ROLES:
            raise ValueError(f"Unknown role: {role!r}")
        created_at = self.db.now_iso()
        with self.db.transaction() as conn:
            cur = conn.execute(
                "INSERT INTO conversations(chat_scope, role, content, created_at) VALUES(?, ?, ?, ?)",
                (chat_scope, role, content, created_at),
            )
        return ConversationTurn(
            id=int(cur.lastrowid),
            chat_scope=chat_scope,
            role=role,
            content=content,
            created_at=created_at,
        )

    def turns_after(self, chat_scope: str, checkpoint: Optional[str]) -> list[ConversationTurn]:
        """Turns strictly newer than ``checkpoint`` (None = all), oldest first."""
        with self.db.read() as conn:
            if checkpoint is None:
                rows = conn.execute(
                    "SELECT * FROM conversations WHERE chat_scope = ? ORDER BY created_at ASC, id ASC",
                    (chat_scope,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM conversations
                    WHERE chat_scope = ? AND created_at > ?
                    ORDER BY created_at ASC, id ASC
                    """,
                    (chat_scope, checkpoint),
                ).fetchall()
        return [_row_to_turn(r) for r in rows]

    def count_after(self, chat_scope: str, checkpoint: Optional[str]) -> int:
        with self.db.read() as conn:
            if checkpoint is None:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM conversations WHERE chat_scope = ?",
                    (chat_scope,),
                ).fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM conversations WHERE chat_scope = ? AND created_at > ?",
                    (chat_scope, checkpoint),
                ).fetchone()
        return int(row["n"])

    def record_checkpoint(self, chat_scope: str, last_turn_at: str, document: Optional[str] = None) -> None:
        """Remember the newest distilled turn for a scope. Never moves backwards."""
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO distill_checkpoints(chat_scope, last_turn_at, document, updated_at)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(chat_scope) DO UPDATE SET
                  last_turn_at = excluded.last_turn_at,
                  document = excluded.document,
                  updated_at = excluded.updated_at
                WHERE excluded.last_turn_at > distill_checkpoints.last_turn_at
                """,
                (chat_scope, last_turn_at, document, self.db.now_iso()),
            )

    def last_checkpoint(self, chat_scope: str) -> Optional[str]:
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT last_turn_at FROM distill_checkpoints WHERE chat_scope = ?",
                (chat_scope,),
            ).fetchone()
        return str(row["last_turn_at"]) if row is not None else None

    def recent(self, chat_scope: str, limit: int = 20) -> list[ConversationTurn]:
        if limit <= 0:
            return []
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM conversations WHERE chat_scope = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (chat_scope, limit),
            ).fetchall()
        return [_row_to_turn(r) for r in reversed(rows)]

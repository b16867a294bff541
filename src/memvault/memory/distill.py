"""Distillation of conversation backlogs into daily memory documents.

A check counts the turns newer than the caller's checkpoint. Once the backlog
reaches the threshold, the agent summarises it, the summary is appended to
``memories/YYYY-MM-DD.md`` and that document is re-indexed. The checkpoint
only moves forward after every step has succeeded, and is then recorded per
scope so a restarted process resumes from the last distilled turn.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from memvault.db import Clock, utc_now
from memvault.llm import AgentClient

from .conversations import ConversationLog
from .embeddings import EmbeddingClient
from .indexer import index_document
from .models import ConversationTurn, DistillOutcome
from .vectorstore import SqliteVectorStore

logger = logging.getLogger(__name__)

SUMMARIZE_PROMPT = """You are summarizing a conversation for a personal assistant's memory.
Extract the key information:

1. Key facts and decisions made
2. Action items or tasks mentioned
3. Important dates or deadlines
4. People or projects discussed
5. Any preferences or opinions expressed

Format as a concise markdown section with bullet points.
Include a one-line summary at the top.
Keep it under 500 words.

Conversation to summarize:
"""


def format_transcript(turns: list[ConversationTurn]) -> str:
    return "\n\n".join(f"[{t.created_at}] {t.role}: {t.content}" for t in turns)


def derive_checkpoint(conversations: ConversationLog, chat_scope: str) -> Optional[str]:
    """Timestamp of the newest turn already distilled for the scope, or None."""
    return conversations.last_checkpoint(chat_scope)


def append_memory_entry(
    vault_root: Path,
    memories_dir: str,
    summary: str,
    now_local: datetime,
) -> str:
    """Append a timestamped section to the day's memory document.

    Returns:
        Document path relative to the vault root
    """
    date_str = now_local.strftime("%Y-%m-%d")
    rel_path = f"{memories_dir.rstrip('/')}/{date_str}.md"
    full_path = vault_root / rel_path
    full_path.parent.mkdir(parents=True, exist_ok=True)

    entry = f"\n## {now_local.strftime('%H:%M:%S')}\n\n{summary.strip()}\n"
    if full_path.exists():
        with open(full_path, "a", encoding="utf-8") as f:
            f.write(entry)
    else:
        full_path.write_text(f"# Memories — {date_str}\n{entry}", encoding="utf-8")
    return rel_path


class ScopeLocks:
    """One lock per chat scope, shared by every trigger built on the same runtime."""

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, scope: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(scope)
            if lock is None:
                lock = threading.Lock()
                self._locks[scope] = lock
            return lock


class DistillationTrigger:
    """Decides when a conversation backlog becomes a memory document.

    At most one check runs per chat scope; a check that arrives while another
    is distilling the same scope returns ``in_flight`` without doing work.
    Triggers that share a ``ScopeLocks`` also exclude each other.
    """

    def __init__(
        self,
        *,
        vault_root: Path,
        conversations: ConversationLog,
        store: SqliteVectorStore,
        agent: AgentClient,
        embedder: Optional[EmbeddingClient],
        threshold: int = 20,
        max_chars: int = 2000,
        memories_dir: str = "memories",
        tz: Optional[ZoneInfo] = None,
        clock: Clock = utc_now,
        locks: Optional[ScopeLocks] = None,
    ):
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.vault_root = vault_root
        self.conversations = conversations
        self.store = store
        self.agent = agent
        self.embedder = embedder
        self.threshold = threshold
        self.max_chars = max_chars
        self.memories_dir = memories_dir
        self.tz = tz or ZoneInfo("UTC")
        self.clock = clock
        self.locks = locks if locks is not None else ScopeLocks()

    def is_distilling(self, scope: str) -> bool:
        return self.locks.get(scope).locked()

    def check(self, scope: str, checkpoint: Optional[str]) -> DistillOutcome:
        """Run one distillation check for ``scope``.

        Args:
            scope: Chat scope whose turns are considered
            checkpoint: Timestamp of the newest already-distilled turn, or
                None for the beginning of history

        Returns:
            DistillOutcome carrying the (possibly advanced) checkpoint. Never
            raises for agent, embedding, storage, or file failures.
        """
        lock = self.locks.get(scope)
        if not lock.acquire(blocking=False):
            logger.info(f"Distillation already in flight for scope {scope}, skipping")
            return DistillOutcome(status="in_flight", checkpoint=checkpoint)
        try:
            return self._run(scope, checkpoint)
        finally:
            lock.release()

    def _run(self, scope: str, checkpoint: Optional[str]) -> DistillOutcome:
        try:
            turns = self.conversations.turns_after(scope, checkpoint)
            if len(turns) < self.threshold:
                return DistillOutcome(status="below_threshold", checkpoint=checkpoint, turns_considered=len(turns))

            logger.info(f"Summarizing {len(turns)} messages for scope {scope}...")
            summary = self.agent.complete(SUMMARIZE_PROMPT + format_transcript(turns))
            if not summary.strip():
                logger.info("Empty summary, skipping")
                return DistillOutcome(status="empty", checkpoint=checkpoint, turns_considered=len(turns))

            now_local = self.clock().astimezone(self.tz)
            rel_path = append_memory_entry(self.vault_root, self.memories_dir, summary, now_local)
            logger.info(f"Saved summary to {rel_path}")

            chunks_indexed = 0
            if self.embedder is None:
                logger.warning(f"Skipping embedding of {rel_path}: no embedding credential configured")
            else:
                chunks_indexed = index_document(
                    self.vault_root,
                    rel_path,
                    store=self.store,
                    embedder=self.embedder,
                    max_chars=self.max_chars,
                )
                logger.info(f"Embedded {chunks_indexed} chunks from {rel_path}")

            new_checkpoint = turns[-1].created_at
            self.conversations.record_checkpoint(scope, new_checkpoint, rel_path)

            return DistillOutcome(
                status="distilled",
                checkpoint=new_checkpoint,
                turns_considered=len(turns),
                document=rel_path,
                chunks_indexed=chunks_indexed,
            )
        except Exception as e:
            logger.exception(f"Distillation failed for scope {scope}; backlog deferred to next check")
            return DistillOutcome(status="failed", checkpoint=checkpoint, error=str(e))

"""Wiring of memvault components from a validated config."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from .config import MemvaultConfig
from .db import Clock, Database, utc_now
from .heartbeat import HeartbeatLog
from .llm import AgentClient
from .memory import (
    ConversationLog,
    DistillationTrigger,
    EmbeddingClient,
    RetrievalService,
    ScopeLocks,
    SqliteVectorStore,
)

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    config: MemvaultConfig
    db: Database
    store: SqliteVectorStore
    embedder: Optional[EmbeddingClient]
    retrieval: RetrievalService
    conversations: ConversationLog
    heartbeat_log: HeartbeatLog
    distill_locks: ScopeLocks = field(default_factory=ScopeLocks)

    def distillation_trigger(self, agent: AgentClient) -> DistillationTrigger:
        """Build a trigger for ``agent``. All triggers from one runtime share per-scope locks."""
        return DistillationTrigger(
            vault_root=self.config.vault_path,
            conversations=self.conversations,
            store=self.store,
            agent=agent,
            embedder=self.embedder,
            threshold=self.config.distill_threshold,
            max_chars=self.config.chunk_max_chars,
            memories_dir=self.config.memories_dir,
            tz=self.config.tzinfo,
            clock=self.db.clock,
            locks=self.distill_locks,
        )

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_runtime(
    config: MemvaultConfig,
    *,
    embedder: Optional[EmbeddingClient],
    clock: Clock = utc_now,
) -> Runtime:
    """Open the database (running migrations) and build the components.

    The caller owns the returned runtime and must close it.
    """
    if embedder is None:
        logger.warning("No embedding credential configured; indexing and search are disabled")
    elif embedder.dim != config.embedding_dim:
        raise ValueError(f"Embedding client dim {embedder.dim} != configured embedding_dim {config.embedding_dim}")

    db = Database(config.db_path, clock=clock).open()
    store = SqliteVectorStore(db, dim=config.embedding_dim)
    return Runtime(
        config=config,
        db=db,
        store=store,
        embedder=embedder,
        retrieval=RetrievalService(store, embedder, default_limit=config.search_limit),
        conversations=ConversationLog(db),
        heartbeat_log=HeartbeatLog(db, window=timedelta(hours=config.dedup_window_hours)),
    )

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

Role = Literal["user", "assistant"]
EmbedMode = Literal["document", "query"]


@dataclass(frozen=True)
class Chunk:
    source_file: str  # relative to vault root, e.g. "memories/2026-02-12.md"
    chunk_index: int
    content: str


@dataclass(frozen=True)
class Neighbor:
    chunk_id: int
    source_file: str
    chunk_index: int
    content: str
    distance: float


@dataclass(frozen=True)
class SearchResult:
    content: str
    source_file: str
    distance: float

    @property
    def relevance(self) -> float:
        return 1.0 - self.distance


@dataclass(frozen=True)
class ConversationTurn:
    id: int
    chat_scope: str
    role: Role
    content: str
    created_at: str  # ISO-8601 UTC, microsecond precision


@dataclass(frozen=True)
class VaultIndexSummary:
    files_considered: int
    files_indexed: int
    files_unchanged: int
    chunks_stored: int
    files_removed: int


@dataclass(frozen=True)
class DistillOutcome:
    status: Literal["below_threshold", "in_flight", "empty", "distilled", "failed"]
    checkpoint: Optional[str]
    turns_considered: int = 0
    document: Optional[str] = None
    chunks_indexed: int = 0
    error: Optional[str] = None

from __future__ import annotations

import logging
import math
import struct
from typing import Sequence

from memvault.db import Database
from memvault.errors import ChunkCountMismatchError

from .models import Chunk, Neighbor

logger = logging.getLogger(__name__)


def pack_vector(values: Sequence[float]) -> bytes:
    return struct.pack("<" + ("f" * len(values)), *values)


def unpack_vector(blob: bytes, dim: int) -> tuple[float, ...]:
    return struct.unpack("<" + ("f" * dim), blob)


def _norm(values: Sequence[float]) -> float:
    return math.sqrt(sum(float(x) * float(x) for x in values))


class SqliteVectorStore:
    """Chunk text and chunk vectors, kept 1:1 in two SQLite tables.

    ``memory_chunks`` holds text; ``memory_vec`` holds a float32 vector per
    chunk id. Rows are only written through ``replace`` and ``remove``, each
    of which runs in a single transaction.
    """

    def __init__(self, db: Database, *, dim: int = 1024):
        if dim <= 0:
            raise ValueError("dim must be > 0")
        self.db = db
        self.dim = dim

    def replace(
        self,
        source_file: str,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float]],
    ) -> None:
        if len(chunks) != len(embeddings):
            raise ChunkCountMismatchError(len(chunks), len(embeddings))
        for c in chunks:
            if c.source_file != source_file:
                raise ValueError(f"Chunk from {c.source_file!r} passed to replace({source_file!r})")
        for vec in embeddings:
            if len(vec) != self.dim:
                raise ValueError(f"Expected {self.dim}-dim embedding, got {len(vec)}")

        now = self.db.now_iso()
        with self.db.transaction() as conn:
            removed = conn.execute("DELETE FROM memory_chunks WHERE source_file = ?", (source_file,)).rowcount
            for chunk, vec in zip(chunks, embeddings):
                cur = conn.execute(
                    """
                    INSERT INTO memory_chunks(source_file, chunk_index, content, created_at, updated_at)
                    VALUES(?, ?, ?, ?, ?)
                    """,
                    (chunk.source_file, chunk.chunk_index, chunk.content, now, now),
                )
                conn.execute(
                    "INSERT INTO memory_vec(id, embedding) VALUES(?, ?)",
                    (cur.lastrowid, pack_vector(vec)),
                )

        logger.info(f"Stored {len(chunks)} chunks for {source_file} (replaced {removed or 0})")

    def remove(self, source_file: str) -> int:
        with self.db.transaction() as conn:
            # memory_vec rows go with their chunk via ON DELETE CASCADE.
            removed = int(conn.execute("DELETE FROM memory_chunks WHERE source_file = ?", (source_file,)).rowcount or 0)
        if removed:
            logger.info(f"Removed {removed} chunks for file: {source_file}")
        return removed

    def nearest_neighbors(self, query_vector: Sequence[float], k: int) -> list[Neighbor]:
        if len(query_vector) != self.dim:
            raise ValueError(f"Expected {self.dim}-dim query vector, got {len(query_vector)}")
        if k <= 0:
            return []
        q_norm = _norm(query_vector)
        if q_norm == 0.0:
            return []

        # One joined read: a chunk is only visible together with its vector.
        with self.db.read() as conn:
            rows = conn.execute(
                """
                SELECT c.id, c.source_file, c.chunk_index, c.content, v.embedding
                FROM memory_chunks c
                JOIN memory_vec v ON v.id = c.id
                ORDER BY c.id ASC
                """
            ).fetchall()

        scored: list[Neighbor] = []
        for r in rows:
            blob = bytes(r["embedding"])
            if len(blob) != self.dim * 4:
                logger.warning(f"Skipping chunk {r['id']}: stored vector has wrong dimension")
                continue
            vals = unpack_vector(blob, self.dim)
            v_norm = _norm(vals)
            if v_norm == 0.0:
                continue
            dot = 0.0
            for a, b in zip(query_vector, vals):
                dot += float(a) * float(b)
            distance = min(2.0, max(0.0, 1.0 - dot / (q_norm * v_norm)))
            scored.append(
                Neighbor(
                    chunk_id=int(r["id"]),
                    source_file=str(r["source_file"]),
                    chunk_index=int(r["chunk_index"]),
                    content=str(r["content"]),
                    distance=distance,
                )
            )

        # sort() is stable, so equal distances keep storage order.
        scored.sort(key=lambda n: n.distance)
        return scored[:k]

    def count(self) -> int:
        with self.db.read() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM memory_chunks").fetchone()
        return int(row["n"])

    def list_sources(self) -> dict[str, int]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT source_file, COUNT(*) AS n FROM memory_chunks GROUP BY source_file ORDER BY source_file ASC"
            ).fetchall()
        return {str(r["source_file"]): int(r["n"]) for r in rows}

    def chunks_for(self, source_file: str) -> list[Chunk]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT source_file, chunk_index, content FROM memory_chunks WHERE source_file = ? ORDER BY chunk_index ASC",
                (source_file,),
            ).fetchall()
        return [
            Chunk(source_file=str(r["source_file"]), chunk_index=int(r["chunk_index"]), content=str(r["content"]))
            for r in rows
        ]


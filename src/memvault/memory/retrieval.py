from __future__ import annotations

import logging
from typing import Optional

import requests

from memvault.errors import EmbeddingResponseError

from .embeddings import EmbeddingClient
from .models import SearchResult
from .vectorstore import SqliteVectorStore

logger = logging.getLogger(__name__)

NO_MEMORIES_TEXT = "No relevant memories found."


class RetrievalService:
    """Embeds query text and returns the nearest stored chunks."""

    def __init__(
        self,
        store: SqliteVectorStore,
        embedder: Optional[EmbeddingClient],
        *,
        default_limit: int = 5,
    ):
        self.store = store
        self.embedder = embedder
        self.default_limit = default_limit

    def search(self, query: str, limit: Optional[int] = None) -> list[SearchResult]:
        """Return chunks ranked by ascending cosine distance.

        Empty store, blank query, or no embedding client all yield []. Errors
        from the embedding service propagate.
        """
        if not query.strip():
            return []
        if self.embedder is None:
            logger.warning("Search skipped: no embedding client configured")
            return []

        k = self.default_limit if limit is None else limit
        if k <= 0:
            return []

        query_vec = self.embedder.embed_query(query)
        neighbors = self.store.nearest_neighbors(query_vec, k)
        return [SearchResult(content=n.content, source_file=n.source_file, distance=n.distance) for n in neighbors]

    def recall(self, query: str, limit: Optional[int] = None) -> str:
        """Search and format the hits as a context block for the agent.

        Retrieval failures are logged and reported as "no relevant memories".
        """
        try:
            results = self.search(query, limit)
        except (requests.RequestException, EmbeddingResponseError) as e:
            logger.warning(f"Memory search failed: {e}")
            return NO_MEMORIES_TEXT
        return format_search_results(results)


def format_search_results(results: list[SearchResult]) -> str:
    if not results:
        return NO_MEMORIES_TEXT

    blocks = []
    for i, r in enumerate(results, start=1):
        blocks.append(f"[{i}] {r.source_file} (relevance {r.relevance:.2f})\n{r.content}")
    return "\n\n---\n\n".join(blocks)

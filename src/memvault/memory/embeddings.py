"""Embedding clients.

Every client batches its input (at most ``batch_size`` texts per external
call) and pauses ``batch_delay_ms`` between successive batches. Output order
and cardinality always match the input. Failures of the external service
propagate to the caller; nothing here retries.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

import requests

from memvault.config import MemvaultConfig
from memvault.errors import ConfigError, EmbeddingResponseError

from .models import EmbedMode

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 128
_MODES = ("document", "query")
_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)


class EmbeddingClient(ABC):
    """Base class: batching and pacing around a single-batch call."""

    def __init__(
        self,
        *,
        dim: int,
        batch_size: int = MAX_BATCH_SIZE,
        batch_delay_ms: int = 200,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if dim <= 0:
            raise ValueError("embedding dim must be > 0")
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        if batch_delay_ms < 0:
            raise ValueError("batch_delay_ms must be >= 0")
        self._dim = dim
        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self._sleep = sleep

    @property
    def dim(self) -> int:
        return self._dim

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to (or standing in for) the service."""

    @abstractmethod
    def _embed_batch(self, texts: list[str], mode: EmbedMode) -> list[list[float]]:
        """Embed one batch of at most ``batch_size`` texts."""

    def embed(self, texts: Sequence[str], mode: EmbedMode = "document") -> list[list[float]]:
        if mode not in _MODES:
            raise ValueError(f"Unknown embedding mode: {mode!r}")
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            if start > 0 and self.batch_delay_ms:
                self._sleep(self.batch_delay_ms / 1000.0)
            batch = list(texts[start : start + self.batch_size])
            out = self._embed_batch(batch, mode)
            if len(out) != len(batch):
                raise EmbeddingResponseError(
                    f"Embedding service returned {len(out)} vectors for {len(batch)} texts"
                )
            vectors.extend(out)

        logger.debug(f"Embedded {len(texts)} texts ({mode}) with {self.model}")
        return vectors

    def embed_query(self, text: str) -> list[float]:
        return self.embed([text], mode="query")[0]


class VoyageEmbeddingClient(EmbeddingClient):
    """HTTP client for the Voyage embeddings API."""

    API_URL = "https://api.voyageai.com/v1/embeddings"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "voyage-3-lite",
        dim: int = 1024,
        batch_size: int = MAX_BATCH_SIZE,
        batch_delay_ms: int = 200,
        timeout_seconds: float = 60,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the Voyage client.

        Args:
            api_key: Voyage API key
            model: Embedding model name
            dim: Expected vector dimensionality (validated on every response)
            batch_size: Texts per request (max 128)
            batch_delay_ms: Pause between successive requests
            timeout_seconds: Per-request timeout
            session: Optional requests session (shared connection pool)

        Raises:
            ValueError: If no API key is provided
        """
        super().__init__(dim=dim, batch_size=batch_size, batch_delay_ms=batch_delay_ms, sleep=sleep)
        if not api_key:
            raise ValueError("Voyage API key not provided. Set VOYAGE_API_KEY.")
        self.api_key = api_key
        self._model = model
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def model(self) -> str:
        return self._model

    def _embed_batch(self, texts: list[str], mode: EmbedMode) -> list[list[float]]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": self._model, "input": texts, "input_type": mode}

        response = self.session.post(self.API_URL, json=payload, headers=headers, timeout=self.timeout_seconds)
        response.raise_for_status()
        return self._parse_response(response.json())

    def _parse_response(self, data: object) -> list[list[float]]:
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise EmbeddingResponseError("Embedding response has no 'data' list")

        items = data["data"]
        # Items carry their input position; order by it when present.
        if all(isinstance(it, dict) and isinstance(it.get("index"), int) for it in items):
            items = sorted(items, key=lambda it: it["index"])

        vectors: list[list[float]] = []
        for it in items:
            emb = it.get("embedding") if isinstance(it, dict) else None
            if not isinstance(emb, list):
                raise EmbeddingResponseError("Embedding item has no 'embedding' list")
            if len(emb) != self.dim:
                raise EmbeddingResponseError(f"Expected {self.dim}-dim vectors, got {len(emb)}")
            vectors.append([float(x) for x in emb])
        return vectors


class HashingEmbeddingClient(EmbeddingClient):
    """Deterministic local embedder.

    Signed feature hashing of lower-cased word tokens, L2-normalised. Texts
    that share words end up close in cosine distance, which is enough for
    offline runs and tests. Requires no network access.
    """

    def __init__(
        self,
        dim: int = 1024,
        *,
        batch_size: int = MAX_BATCH_SIZE,
        batch_delay_ms: int = 0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(dim=dim, batch_size=batch_size, batch_delay_ms=batch_delay_ms, sleep=sleep)
        self.calls: list[tuple[int, EmbedMode]] = []

    @property
    def model(self) -> str:
        return f"hashing-{self.dim}"

    def _embed_batch(self, texts: list[str], mode: EmbedMode) -> list[list[float]]:
        self.calls.append((len(texts), mode))
        return [self.embed_text(t) for t in texts]

    def embed_text(self, text: str) -> list[float]:
        vec = [0.0] * self.dim
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vec[bucket] += sign

        norm = math.sqrt(sum(x * x for x in vec))
        if norm == 0.0:
            return vec
        return [x / norm for x in vec]


def get_embedding_client(config: MemvaultConfig, engine: str = "auto") -> Optional[EmbeddingClient]:
    """Get an embedding client for the configured engine.

    Args:
        config: Validated configuration
        engine: 'voyage', 'fake', or 'auto'. 'auto' uses Voyage when a
            credential is configured and returns None otherwise.

    Returns:
        EmbeddingClient, or None when indexing must run in degraded mode

    Raises:
        ConfigError: If 'voyage' is requested without a credential, or the
            engine name is unknown
    """
    if engine == "fake":
        return HashingEmbeddingClient(
            config.embedding_dim,
            batch_size=config.embedding_batch_size,
        )

    if engine in ("voyage", "auto"):
        if config.has_embedding_credential:
            return VoyageEmbeddingClient(
                config.voyage_api_key,
                model=config.embedding_model,
                dim=config.embedding_dim,
                batch_size=config.embedding_batch_size,
                batch_delay_ms=config.embedding_batch_delay_ms,
                timeout_seconds=config.request_timeout_seconds,
            )
        if engine == "voyage":
            raise ConfigError("VOYAGE_API_KEY not set")
        return None

    raise ConfigError(f"Unknown embedding engine: {engine!r}")

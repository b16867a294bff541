"""Exception types raised by memvault."""


class MemvaultError(Exception):
    """Base class for memvault errors."""


class ConfigError(MemvaultError, ValueError):
    """Configuration is missing, malformed, or out of range."""


class ChunkCountMismatchError(MemvaultError, ValueError):
    """Chunks and embeddings passed to the vector store differ in length."""

    def __init__(self, chunks: int, embeddings: int):
        super().__init__(f"Chunk/embedding count mismatch: {chunks} vs {embeddings}")
        self.chunks = chunks
        self.embeddings = embeddings


class EmbeddingResponseError(MemvaultError, RuntimeError):
    """The embedding service returned a response we cannot use."""


class AgentResponseError(MemvaultError, RuntimeError):
    """The agent service returned a response we cannot use."""

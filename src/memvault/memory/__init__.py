"""Chunking, embeddings, vector storage, retrieval and distillation for the vault."""

from .chunking import chunk_document, chunk_entire_vault, chunk_vault_file
from .conversations import ConversationLog
from .distill import DistillationTrigger, ScopeLocks, derive_checkpoint
from .embeddings import EmbeddingClient, HashingEmbeddingClient, VoyageEmbeddingClient, get_embedding_client
from .indexer import index_document, index_vault
from .models import Chunk, ConversationTurn, DistillOutcome, Neighbor, SearchResult, VaultIndexSummary
from .retrieval import RetrievalService, format_search_results
from .vectorstore import SqliteVectorStore

__all__ = [
    "Chunk",
    "ConversationLog",
    "ConversationTurn",
    "DistillOutcome",
    "DistillationTrigger",
    "EmbeddingClient",
    "HashingEmbeddingClient",
    "Neighbor",
    "RetrievalService",
    "ScopeLocks",
    "SearchResult",
    "SqliteVectorStore",
    "VaultIndexSummary",
    "VoyageEmbeddingClient",
    "chunk_document",
    "chunk_entire_vault",
    "chunk_vault_file",
    "derive_checkpoint",
    "format_search_results",
    "get_embedding_client",
    "index_document",
    "index_vault",
]

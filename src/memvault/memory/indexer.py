"""Chunk, embed and store pipeline for single documents and whole vaults."""

from __future__ import annotations

import logging
from pathlib import Path

from memvault.vault import list_vault_files

from .chunking import chunk_vault_file
from .embeddings import EmbeddingClient
from .models import Chunk, VaultIndexSummary
from .vectorstore import SqliteVectorStore

logger = logging.getLogger(__name__)


def index_document(
    vault_root: Path,
    rel_path: str,
    *,
    store: SqliteVectorStore,
    embedder: EmbeddingClient,
    max_chars: int = 2000,
) -> int:
    """Re-index one document, replacing every chunk it had before.

    A missing or empty document has its chunks removed.

    Returns:
        Number of chunks now stored for the document
    """
    chunks = chunk_vault_file(vault_root, rel_path, max_chars)
    if not chunks:
        store.remove(rel_path)
        return 0

    embeddings = embedder.embed([c.content for c in chunks], mode="document")
    store.replace(rel_path, chunks, embeddings)
    return len(chunks)


def index_vault(
    vault_root: Path,
    *,
    store: SqliteVectorStore,
    embedder: EmbeddingClient,
    max_chars: int = 2000,
    full: bool = False,
) -> VaultIndexSummary:
    """Embed and store every markdown document in the vault.

    Chunks from all changed documents are embedded together so batches stay
    full, then each document is replaced in its own transaction. Documents
    whose stored chunks already match are skipped unless ``full`` is set.
    Stored documents that vanished from disk (or now chunk to nothing) are
    removed.
    """
    rel_paths = list_vault_files(vault_root)
    stored_sources = store.list_sources()

    pending: dict[str, list[Chunk]] = {}
    unchanged = 0
    empty: list[str] = []
    for rel_path in rel_paths:
        chunks = chunk_vault_file(vault_root, rel_path, max_chars)
        if not chunks:
            empty.append(rel_path)
            continue
        if not full and rel_path in stored_sources and store.chunks_for(rel_path) == chunks:
            unchanged += 1
            continue
        pending[rel_path] = chunks

    chunks_stored = 0
    if pending:
        all_chunks = [c for chunks in pending.values() for c in chunks]
        logger.info(f"Embedding {len(all_chunks)} chunks from {len(pending)} files...")
        vectors = embedder.embed([c.content for c in all_chunks], mode="document")

        offset = 0
        for rel_path, chunks in pending.items():
            store.replace(rel_path, chunks, vectors[offset : offset + len(chunks)])
            offset += len(chunks)
            chunks_stored += len(chunks)
    else:
        logger.info("No chunks to embed")

    on_disk = set(rel_paths)
    files_removed = 0
    for source in sorted(stored_sources):
        if source not in on_disk or source in empty:
            if store.remove(source):
                files_removed += 1

    summary = VaultIndexSummary(
        files_considered=len(rel_paths),
        files_indexed=len(pending),
        files_unchanged=unchanged,
        chunks_stored=chunks_stored,
        files_removed=files_removed,
    )
    logger.info(
        f"Embedded and stored {chunks_stored} chunks from {len(pending)} files "
        f"({unchanged} unchanged, {files_removed} removed)"
    )
    return summary

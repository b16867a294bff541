"""Heading/paragraph chunking for vault documents.

Sections begin at level-2 or level-3 headings. Sections that fit within
``max_chars`` become one chunk; longer sections are re-split at blank lines
and paragraphs are packed greedily. A paragraph is never cut, so a single
paragraph longer than ``max_chars`` becomes its own oversized chunk.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from memvault.vault import list_vault_files, read_vault_file

from .models import Chunk

logger = logging.getLogger(__name__)

_HEADING_SPLIT_RE = re.compile(r"(?=^#{2,3}\s)", re.MULTILINE)
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")
_PARAGRAPH_SEPARATOR = "\n\n"


def split_sections(content: str) -> list[str]:
    return [s for s in _HEADING_SPLIT_RE.split(content) if s.strip()]


def _pack_paragraphs(section: str, max_chars: int) -> list[str]:
    pieces: list[str] = []
    current = ""
    for para in _PARAGRAPH_SPLIT_RE.split(section):
        if current and len(current) + len(para) + len(_PARAGRAPH_SEPARATOR) > max_chars:
            pieces.append(current)
            current = para
        elif current:
            current = current + _PARAGRAPH_SEPARATOR + para
        else:
            current = para
    if current:
        pieces.append(current)
    return pieces


def chunk_document(content: str, source_file: str, max_chars: int = 2000) -> list[Chunk]:
    if max_chars <= 0:
        raise ValueError(f"max_chars must be > 0, got {max_chars}")
    if not content.strip():
        return []

    texts: list[str] = []
    for section in split_sections(content):
        if len(section) <= max_chars:
            texts.append(section)
        else:
            texts.extend(_pack_paragraphs(section, max_chars))

    chunks: list[Chunk] = []
    for text in texts:
        trimmed = text.strip()
        if not trimmed:
            continue
        chunks.append(Chunk(source_file=source_file, chunk_index=len(chunks), content=trimmed))
    return chunks


def chunk_vault_file(vault_root: Path, rel_path: str, max_chars: int = 2000) -> list[Chunk]:
    content = read_vault_file(vault_root, rel_path)
    if content is None:
        return []
    return chunk_document(content, rel_path, max_chars)


def chunk_entire_vault(vault_root: Path, max_chars: int = 2000) -> list[Chunk]:
    files = list_vault_files(vault_root)
    all_chunks: list[Chunk] = []
    for rel_path in files:
        all_chunks.extend(chunk_vault_file(vault_root, rel_path, max_chars))

    logger.info(f"Chunked {len(files)} files into {len(all_chunks)} chunks")
    return all_chunks

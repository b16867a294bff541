"""Read-only access to the markdown vault on disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def list_vault_files(vault_root: Path) -> list[str]:
    """List markdown files under the vault, relative to its root.

    Directories whose name starts with "." are skipped. Paths are POSIX
    strings sorted for deterministic iteration.
    """
    if not vault_root.exists():
        logger.warning(f"Vault path does not exist: {vault_root}")
        return []

    rel_paths: list[str] = []
    stack = [vault_root]
    while stack:
        current = stack.pop()
        for entry in current.iterdir():
            if entry.is_dir():
                if not entry.name.startswith("."):
                    stack.append(entry)
            elif entry.is_file() and entry.suffix == ".md":
                rel_paths.append(entry.relative_to(vault_root).as_posix())

    rel_paths.sort()
    return rel_paths


def read_vault_file(vault_root: Path, rel_path: str) -> Optional[str]:
    full_path = vault_root / rel_path
    if not full_path.is_file():
        return None
    return full_path.read_text(encoding="utf-8")

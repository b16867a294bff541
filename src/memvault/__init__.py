"""memvault - file-backed markdown memory with semantic retrieval."""

__version__ = "0.1.0"

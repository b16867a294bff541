"""Versioned schema migrations, applied once each, in list order."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Migration:
    name: str
    sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        name="001_conversations",
        sql="""
        CREATE TABLE conversations(
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          chat_scope TEXT NOT NULL,
          role TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
          content TEXT NOT NULL,
          created_at TEXT NOT NULL
        );
        CREATE INDEX idx_conv_scope ON conversations(chat_scope, created_at);
        """,
    ),
    Migration(
        name="002_memory_chunks",
        sql="""
        CREATE TABLE memory_chunks(
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          source_file TEXT NOT NULL,
          chunk_index INTEGER NOT NULL,
          content TEXT NOT NULL,
          created_at TEXT NOT NULL,
          updated_at TEXT NOT NULL,
          UNIQUE(source_file, chunk_index)
        );
        CREATE INDEX idx_chunks_source ON memory_chunks(source_file);
        """,
    ),
    Migration(
        name="003_memory_vec",
        sql="""
        CREATE TABLE memory_vec(
          id INTEGER PRIMARY KEY,
          embedding BLOB NOT NULL,
          FOREIGN KEY(id) REFERENCES memory_chunks(id) ON DELETE CASCADE
        );
        """,
    ),
    Migration(
        name="004_heartbeat_log",
        sql="""
        CREATE TABLE heartbeat_log(
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          content_hash TEXT NOT NULL,
          content TEXT NOT NULL,
          delivered INTEGER NOT NULL DEFAULT 0,
          created_at TEXT NOT NULL
        );
        CREATE INDEX idx_heartbeat_hash ON heartbeat_log(content_hash, created_at);
        """,
    ),
    Migration(
        name="005_distill_checkpoints",
        sql="""
        CREATE TABLE distill_checkpoints(
          chat_scope TEXT PRIMARY KEY,
          last_turn_at TEXT NOT NULL,
          document TEXT,
          updated_at TEXT NOT NULL
        );
        """,
    ),
]

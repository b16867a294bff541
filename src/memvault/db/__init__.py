"""SQLite persistence: connection lifecycle and versioned migrations."""

from .connection import Clock, Database, iso_utc, utc_now
from .migrations import MIGRATIONS, Migration

__all__ = ["Clock", "Database", "MIGRATIONS", "Migration", "iso_utc", "utc_now"]

"""Database helpers for per-workspace SQLite files."""

from cv_core.db.engine import create_sqlite_engine, initialize_database
from cv_core.db.migrations import migrate_to_latest

__all__ = ["create_sqlite_engine", "initialize_database", "migrate_to_latest"]

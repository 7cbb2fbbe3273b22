"""Backing store capability set and its SQLite implementation."""

from cv_core.store.base import BackingStore, Contains, Query, Record
from cv_core.store.batch_fetcher import BatchFetcher
from cv_core.store.sqlite_store import SqliteStore

__all__ = [
    "BackingStore",
    "BatchFetcher",
    "Contains",
    "Query",
    "Record",
    "SqliteStore",
]

"""SQLite engines for workspace databases."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from cv_core.db.migrations import migrate_to_latest

logger = logging.getLogger(__name__)

# Seconds a writer waits on a locked database before the store reports it unavailable.
BUSY_TIMEOUT_SECONDS = 5.0

_CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    # substring filters match key text exactly, case included
    "PRAGMA case_sensitive_like=ON",
)


def _apply_pragmas(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    try:
        for pragma in _CONNECTION_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def create_sqlite_engine(db_path: Path, *, echo: bool = False) -> Engine:
    db_path = Path(db_path).expanduser().resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite+pysqlite:///{db_path.as_posix()}",
        echo=echo,
        connect_args={"timeout": BUSY_TIMEOUT_SECONDS},
    )
    event.listen(engine, "connect", _apply_pragmas)
    return engine


def initialize_database(db_path: Path) -> Engine:
    """Engine for ``db_path`` with the schema migrated to the latest version."""

    engine = create_sqlite_engine(db_path)
    version = migrate_to_latest(engine)
    logger.debug("Database %s at schema version %d", db_path, version)
    return engine

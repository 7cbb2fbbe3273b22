from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

Migration = Callable[[Connection], None]


def _table_exists(connection: Connection, table_name: str) -> bool:
    row = connection.execute(
        text(
            "SELECT 1 FROM sqlite_master "
            "WHERE type='table' AND name=:table_name LIMIT 1"
        ),
        {"table_name": table_name},
    ).first()
    return row is not None


def get_schema_version(connection: Connection) -> int:
    if not _table_exists(connection, "schema_meta"):
        return 0

    value = connection.execute(
        text("SELECT value FROM schema_meta WHERE key='schema_version' LIMIT 1")
    ).scalar_one_or_none()

    if value is None:
        return 0

    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _set_schema_version(connection: Connection, version: int) -> None:
    connection.execute(
        text(
            "INSERT INTO schema_meta(key, value) VALUES('schema_version', :version) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value"
        ),
        {"version": str(version)},
    )


def _migration_v1(connection: Connection) -> None:
    statements = (
        """
        CREATE TABLE IF NOT EXISTS schema_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS languages (
            code TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            native_name TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS translation_versions (
            id TEXT PRIMARY KEY,
            key TEXT NOT NULL,
            locale TEXT NOT NULL,
            value TEXT NOT NULL,
            version_number INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            auto_translated INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            created_by TEXT NOT NULL,
            reviewed_at TEXT,
            reviewed_by TEXT,
            review_notes TEXT,
            previous_version_id TEXT,
            FOREIGN KEY(previous_version_id) REFERENCES translation_versions(id)
                ON DELETE SET NULL
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_translation_versions_chain
        ON translation_versions(key, locale, version_number)
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_translation_versions_locale_status
        ON translation_versions(locale, status)
        """,
    )

    for statement in statements:
        connection.exec_driver_sql(statement)


def _migration_v2(connection: Connection) -> None:
    statements = (
        """
        CREATE TABLE IF NOT EXISTS item_templates (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS content_fields (
            id TEXT PRIMARY KEY,
            item_template_id TEXT NOT NULL,
            field_key TEXT NOT NULL,
            label TEXT NOT NULL,
            field_type TEXT NOT NULL,
            is_required INTEGER NOT NULL DEFAULT 0,
            is_translatable INTEGER NOT NULL DEFAULT 0,
            order_index INTEGER NOT NULL DEFAULT 0,
            default_value_json TEXT,
            FOREIGN KEY(item_template_id) REFERENCES item_templates(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_content_fields_template_key
        ON content_fields(item_template_id, field_key)
        """,
        """
        CREATE TABLE IF NOT EXISTS content_items (
            id TEXT PRIMARY KEY,
            item_template_id TEXT NOT NULL,
            name TEXT NOT NULL,
            slug TEXT,
            language_code TEXT,
            base_item_id TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(item_template_id) REFERENCES item_templates(id) ON DELETE CASCADE,
            FOREIGN KEY(base_item_id) REFERENCES content_items(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_content_items_base_language
        ON content_items(base_item_id, language_code)
        """,
        """
        CREATE TABLE IF NOT EXISTS content_item_data (
            id TEXT PRIMARY KEY,
            item_id TEXT NOT NULL,
            field_id TEXT NOT NULL,
            value_json TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY(item_id) REFERENCES content_items(id) ON DELETE CASCADE,
            FOREIGN KEY(field_id) REFERENCES content_fields(id) ON DELETE CASCADE
        )
        """,
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_content_item_data_item_field
        ON content_item_data(item_id, field_id)
        """,
    )

    for statement in statements:
        connection.exec_driver_sql(statement)


MIGRATIONS: dict[int, Migration] = {
    1: _migration_v1,
    2: _migration_v2,
}


def migrate_to_latest(engine: Engine) -> int:
    current_version = 0

    with engine.begin() as connection:
        current_version = get_schema_version(connection)

        for target_version in sorted(MIGRATIONS):
            if target_version <= current_version:
                continue
            MIGRATIONS[target_version](connection)
            _set_schema_version(connection, target_version)
            current_version = target_version

    return current_version

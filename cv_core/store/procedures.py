"""Stored procedures for version state transitions.

Each procedure runs inside the transaction opened by the store, so reading
the chain head and writing the next version happen atomically.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.engine import Connection

from cv_core.constants import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from cv_core.errors import InvalidTransitionError, NotFoundError

Procedure = Callable[..., Any]


def utc_now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _chain_head(connection: Connection, *, key: str, locale: str) -> tuple[str, int] | None:
    row = connection.execute(
        text(
            """
            SELECT id, version_number
            FROM translation_versions
            WHERE key = :key AND locale = :locale
            ORDER BY version_number DESC
            LIMIT 1
            """
        ),
        {"key": key, "locale": locale},
    ).first()
    if row is None:
        return None
    return str(row[0]), int(row[1])


def _insert_version(
    connection: Connection,
    *,
    key: str,
    locale: str,
    value: str,
    status: str,
    auto_translated: bool,
    created_by: str,
    previous_version_id: str | None,
    reviewed_by: str | None = None,
    review_notes: str | None = None,
) -> str:
    head = _chain_head(connection, key=key, locale=locale)
    version_number = 1 if head is None else head[1] + 1
    version_id = str(uuid4())
    now = utc_now_iso()
    connection.execute(
        text(
            """
            INSERT INTO translation_versions(
                id, key, locale, value, version_number, status, auto_translated,
                created_at, created_by, reviewed_at, reviewed_by, review_notes,
                previous_version_id
            ) VALUES (
                :id, :key, :locale, :value, :version_number, :status, :auto_translated,
                :created_at, :created_by, :reviewed_at, :reviewed_by, :review_notes,
                :previous_version_id
            )
            """
        ),
        {
            "id": version_id,
            "key": key,
            "locale": locale,
            "value": value,
            "version_number": version_number,
            "status": status,
            "auto_translated": 1 if auto_translated else 0,
            "created_at": now,
            "created_by": created_by,
            "reviewed_at": now if reviewed_by else None,
            "reviewed_by": reviewed_by,
            "review_notes": review_notes,
            "previous_version_id": previous_version_id,
        },
    )
    return version_id


def create_translation_version(
    connection: Connection,
    *,
    key: str,
    locale: str,
    value: str,
    auto_translated: bool = False,
    created_by: str,
) -> str:
    head = _chain_head(connection, key=key, locale=locale)
    return _insert_version(
        connection,
        key=key,
        locale=locale,
        value=value,
        status=STATUS_PENDING,
        auto_translated=auto_translated,
        created_by=created_by,
        previous_version_id=head[0] if head else None,
    )


def _review(
    connection: Connection,
    *,
    version_id: str,
    status: str,
    reviewed_by: str,
    notes: str | None,
) -> bool:
    current = connection.execute(
        text("SELECT status FROM translation_versions WHERE id = :id LIMIT 1"),
        {"id": version_id},
    ).scalar_one_or_none()
    if current is None:
        raise NotFoundError(f"Translation version not found: {version_id}")
    if current != STATUS_PENDING:
        raise InvalidTransitionError(
            f"Version {version_id} is {current}; only pending versions can be {status}"
        )

    result = connection.execute(
        text(
            """
            UPDATE translation_versions
            SET status = :status,
                reviewed_at = :reviewed_at,
                reviewed_by = :reviewed_by,
                review_notes = :review_notes
            WHERE id = :id AND status = :pending
            """
        ),
        {
            "id": version_id,
            "status": status,
            "reviewed_at": utc_now_iso(),
            "reviewed_by": reviewed_by,
            "review_notes": notes,
            "pending": STATUS_PENDING,
        },
    )
    return bool(result.rowcount)


def approve_translation(
    connection: Connection,
    *,
    version_id: str,
    reviewed_by: str,
    notes: str | None = None,
) -> bool:
    return _review(
        connection,
        version_id=version_id,
        status=STATUS_APPROVED,
        reviewed_by=reviewed_by,
        notes=notes,
    )


def reject_translation(
    connection: Connection,
    *,
    version_id: str,
    reviewed_by: str,
    notes: str,
) -> bool:
    return _review(
        connection,
        version_id=version_id,
        status=STATUS_REJECTED,
        reviewed_by=reviewed_by,
        notes=notes,
    )


def rollback_translation(
    connection: Connection,
    *,
    key: str,
    locale: str,
    target_version: int,
    created_by: str,
) -> str:
    target = connection.execute(
        text(
            """
            SELECT id, value, status, auto_translated
            FROM translation_versions
            WHERE key = :key AND locale = :locale AND version_number = :version_number
            LIMIT 1
            """
        ),
        {"key": key, "locale": locale, "version_number": target_version},
    ).mappings().first()
    if target is None:
        raise NotFoundError(
            f"Version {target_version} does not exist for {key} ({locale})"
        )

    restores_reviewed = target["status"] == STATUS_APPROVED
    return _insert_version(
        connection,
        key=key,
        locale=locale,
        value=str(target["value"]),
        status=STATUS_APPROVED if restores_reviewed else STATUS_PENDING,
        auto_translated=bool(target["auto_translated"]),
        created_by=created_by,
        previous_version_id=str(target["id"]),
        reviewed_by=created_by if restores_reviewed else None,
        review_notes=f"Rolled back to version {target_version}" if restores_reviewed else None,
    )


PROCEDURES: dict[str, Procedure] = {
    "create_translation_version": create_translation_version,
    "approve_translation": approve_translation,
    "reject_translation": reject_translation,
    "rollback_translation": rollback_translation,
}

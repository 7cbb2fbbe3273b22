from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from cv_core.constants import DEFAULT_ACTOR, STATUS_APPROVED, STATUS_PENDING
from cv_core.errors import EngineError, NotFoundError, ValidationError
from cv_core.i18n.locale import is_corrupted_key, normalize_locale, validate_key
from cv_core.store.base import BackingStore, Query
from cv_core.store.batch_fetcher import BatchFetcher

logger = logging.getLogger(__name__)

VERSIONS_TABLE = "translation_versions"


@dataclass(slots=True, frozen=True)
class TranslationVersion:
    id: str
    key: str
    locale: str
    value: str
    version_number: int
    status: str
    auto_translated: bool
    created_at: str
    created_by: str
    reviewed_at: str | None = None
    reviewed_by: str | None = None
    review_notes: str | None = None
    previous_version_id: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> TranslationVersion:
        return cls(
            id=str(record["id"]),
            key=str(record["key"]),
            locale=str(record["locale"]),
            value=str(record["value"]),
            version_number=int(record["version_number"]),
            status=str(record["status"]),
            auto_translated=bool(record["auto_translated"]),
            created_at=str(record["created_at"]),
            created_by=str(record["created_by"]),
            reviewed_at=record.get("reviewed_at"),
            reviewed_by=record.get("reviewed_by"),
            review_notes=record.get("review_notes"),
            previous_version_id=record.get("previous_version_id"),
        )


class VersionStore:
    """Append-only version chains per (key, locale) with a review state machine.

    State changes go through the store's procedures so that numbering and
    status checks are atomic at the store; this class validates input and
    shapes results.
    """

    def __init__(
        self,
        store: BackingStore,
        fetcher: BatchFetcher,
        *,
        default_actor: str = DEFAULT_ACTOR,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._default_actor = default_actor

    def _actor(self, actor: str | None) -> str:
        return (actor or "").strip() or self._default_actor

    def propose_version(
        self,
        key: str,
        locale: str,
        value: str,
        auto_translated: bool = False,
        *,
        created_by: str | None = None,
    ) -> str:
        if value is None:
            raise ValidationError("Translation value is required")
        version_id = self._store.call_procedure(
            "create_translation_version",
            {
                "key": validate_key(key),
                "locale": normalize_locale(locale),
                "value": str(value),
                "auto_translated": bool(auto_translated),
                "created_by": self._actor(created_by),
            },
        )
        logger.info("Proposed version %s for %s (%s)", version_id, key, locale)
        return str(version_id)

    def approve(
        self,
        version_id: str,
        notes: str | None = None,
        *,
        reviewed_by: str | None = None,
    ) -> bool:
        approved = bool(
            self._store.call_procedure(
                "approve_translation",
                {
                    "version_id": version_id,
                    "reviewed_by": self._actor(reviewed_by),
                    "notes": notes,
                },
            )
        )
        logger.info("Approved version %s", version_id)
        return approved

    def reject(
        self,
        version_id: str,
        notes: str,
        *,
        reviewed_by: str | None = None,
    ) -> bool:
        if not (notes or "").strip():
            raise ValidationError("Rejecting a translation requires review notes")
        rejected = bool(
            self._store.call_procedure(
                "reject_translation",
                {
                    "version_id": version_id,
                    "reviewed_by": self._actor(reviewed_by),
                    "notes": notes.strip(),
                },
            )
        )
        logger.info("Rejected version %s", version_id)
        return rejected

    def rollback(
        self,
        key: str,
        locale: str,
        target_version_number: int,
        *,
        created_by: str | None = None,
    ) -> str:
        if target_version_number < 1:
            raise NotFoundError(f"Version {target_version_number} does not exist")
        version_id = self._store.call_procedure(
            "rollback_translation",
            {
                "key": key,
                "locale": normalize_locale(locale),
                "target_version": int(target_version_number),
                "created_by": self._actor(created_by),
            },
        )
        logger.info(
            "Rolled back %s (%s) to version %d as %s",
            key,
            locale,
            target_version_number,
            version_id,
        )
        return str(version_id)

    def batch_approve(
        self,
        version_ids: Iterable[str],
        notes: str | None = None,
        *,
        reviewed_by: str | None = None,
    ) -> int:
        approved_count = 0
        failed_count = 0
        for version_id in version_ids:
            try:
                if self.approve(version_id, notes, reviewed_by=reviewed_by):
                    approved_count += 1
            except EngineError as exc:
                failed_count += 1
                logger.warning("Batch approve skipped %s: %s", version_id, exc)
        if failed_count:
            logger.warning(
                "Batch approve finished with %d approved, %d failed",
                approved_count,
                failed_count,
            )
        return approved_count

    def get_version(self, version_id: str) -> TranslationVersion:
        rows = self._store.query(VERSIONS_TABLE, filters={"id": version_id}, limit=1)
        if not rows:
            raise NotFoundError(f"Translation version not found: {version_id}")
        return TranslationVersion.from_record(rows[0])

    def history(self, key: str, locale: str) -> list[TranslationVersion]:
        records = self._fetcher.fetch_all(
            Query(
                VERSIONS_TABLE,
                filters={"key": key, "locale": normalize_locale(locale)},
                order_by=("-version_number",),
            )
        )
        return [TranslationVersion.from_record(record) for record in records]

    def pending(self, locale: str | None = None) -> list[TranslationVersion]:
        filters: dict[str, Any] = {"status": STATUS_PENDING}
        if locale:
            filters["locale"] = normalize_locale(locale)
        records = self._fetcher.fetch_all(
            Query(
                VERSIONS_TABLE,
                filters=filters,
                order_by=("-created_at", "-version_number", "id"),
            )
        )
        return [
            TranslationVersion.from_record(record)
            for record in records
            if not is_corrupted_key(str(record["key"]))
        ]

    def current_approved(self, key: str, locale: str) -> TranslationVersion | None:
        rows = self._store.query(
            VERSIONS_TABLE,
            filters={
                "key": key,
                "locale": normalize_locale(locale),
                "status": STATUS_APPROVED,
            },
            order_by=("-version_number",),
            limit=1,
        )
        return TranslationVersion.from_record(rows[0]) if rows else None

    def approved_map(self, locale: str) -> dict[str, str]:
        """Latest approved value per key for exactly one locale."""

        records = self._fetcher.fetch_all(
            Query(
                VERSIONS_TABLE,
                filters={"locale": locale, "status": STATUS_APPROVED},
                order_by=("key", "version_number", "id"),
                columns=("id", "key", "value", "version_number"),
            )
        )
        values: dict[str, str] = {}
        for record in records:
            key = str(record["key"])
            if is_corrupted_key(key):
                continue
            # ascending order: later rows are newer approvals of the same key
            values[key] = str(record["value"])
        return values

    def all_keys(self, *, include_corrupted: bool = False) -> list[str]:
        records = self._fetcher.fetch_all(
            Query(VERSIONS_TABLE, order_by=("key", "id"), columns=("id", "key"))
        )
        keys = {str(record["key"]) for record in records}
        if not include_corrupted:
            keys = {key for key in keys if not is_corrupted_key(key)}
        return sorted(keys)

    def delete_key(self, key: str) -> int:
        deleted = self._store.delete(VERSIONS_TABLE, {"key": key})
        if not deleted:
            raise NotFoundError(f"Translation key not found: {key}")
        logger.info("Deleted %d versions of %s", deleted, key)
        return deleted

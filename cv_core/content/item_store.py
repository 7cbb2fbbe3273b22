from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from cv_core.content.field_values import check_field_type, decode_value, encode_value, validate_value
from cv_core.errors import ConflictError, NotFoundError, ValidationError
from cv_core.i18n.locale import normalize_locale
from cv_core.project.workspace import slugify
from cv_core.store.base import BackingStore, Query, Record
from cv_core.store.batch_fetcher import BatchFetcher
from cv_core.store.procedures import utc_now_iso

logger = logging.getLogger(__name__)

TEMPLATES_TABLE = "item_templates"
FIELDS_TABLE = "content_fields"
ITEMS_TABLE = "content_items"
DATA_TABLE = "content_item_data"


@dataclass(slots=True, frozen=True)
class TemplateRow:
    id: str
    name: str
    slug: str


@dataclass(slots=True, frozen=True)
class FieldRow:
    id: str
    item_template_id: str
    field_key: str
    label: str
    field_type: str
    is_translatable: bool
    is_required: bool
    order_index: int
    default_value: Any = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> FieldRow:
        return cls(
            id=str(record["id"]),
            item_template_id=str(record["item_template_id"]),
            field_key=str(record["field_key"]),
            label=str(record["label"]),
            field_type=str(record["field_type"]),
            is_translatable=bool(record["is_translatable"]),
            is_required=bool(record["is_required"]),
            order_index=int(record["order_index"]),
            default_value=decode_value(record.get("default_value_json")),
        )


@dataclass(slots=True, frozen=True)
class ItemRow:
    id: str
    item_template_id: str
    name: str
    slug: str | None
    language_code: str | None
    base_item_id: str | None

    @property
    def is_override(self) -> bool:
        return self.base_item_id is not None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ItemRow:
        return cls(
            id=str(record["id"]),
            item_template_id=str(record["item_template_id"]),
            name=str(record["name"]),
            slug=record.get("slug"),
            language_code=record.get("language_code"),
            base_item_id=record.get("base_item_id"),
        )


class ContentRepository:
    """Templates, fields, base items and their locale overrides."""

    def __init__(self, store: BackingStore, fetcher: BatchFetcher) -> None:
        self._store = store
        self._fetcher = fetcher

    # Templates and fields

    def create_template(self, name: str, *, slug: str | None = None) -> TemplateRow:
        now = utc_now_iso()
        row = {
            "id": str(uuid4()),
            "name": name,
            "slug": slugify(slug if slug is not None else name),
            "created_at": now,
            "updated_at": now,
        }
        self._store.insert(TEMPLATES_TABLE, [row])
        return TemplateRow(id=row["id"], name=name, slug=row["slug"])

    def add_field(
        self,
        template_id: str,
        field_key: str,
        *,
        label: str | None = None,
        field_type: str = "text",
        is_translatable: bool = False,
        is_required: bool = False,
        order_index: int | None = None,
        default_value: Any = None,
    ) -> FieldRow:
        check_field_type(field_type)
        if not self._store.query(TEMPLATES_TABLE, filters={"id": template_id}, limit=1):
            raise NotFoundError(f"Item template not found: {template_id}")
        default = validate_value(field_key, field_type, default_value)
        if order_index is None:
            order_index = len(self.list_fields(template_id))

        record = {
            "id": str(uuid4()),
            "item_template_id": template_id,
            "field_key": field_key,
            "label": label or field_key,
            "field_type": field_type,
            "is_required": 1 if is_required else 0,
            "is_translatable": 1 if is_translatable else 0,
            "order_index": order_index,
            "default_value_json": encode_value(default),
        }
        self._store.insert(FIELDS_TABLE, [record])
        return FieldRow.from_record(record)

    def list_fields(self, template_id: str) -> list[FieldRow]:
        records = self._fetcher.fetch_all(
            Query(
                FIELDS_TABLE,
                filters={"item_template_id": template_id},
                order_by=("order_index", "id"),
            )
        )
        return [FieldRow.from_record(record) for record in records]

    def set_field_translatable(self, field_id: str, is_translatable: bool) -> FieldRow:
        rows = self._store.query(FIELDS_TABLE, filters={"id": field_id}, limit=1)
        if not rows:
            raise NotFoundError(f"Content field not found: {field_id}")
        current = FieldRow.from_record(rows[0])
        if current.is_translatable == is_translatable:
            return current

        # Flipping the flag would silently change what every existing item resolves to.
        if self._store.query(DATA_TABLE, filters={"field_id": field_id}, limit=1):
            raise ValidationError(
                f"Field {current.field_key!r} already has stored values; "
                "is_translatable cannot change"
            )
        updated = self._store.update(
            FIELDS_TABLE, {"id": field_id}, {"is_translatable": 1 if is_translatable else 0}
        )
        return FieldRow.from_record(updated[0])

    # Items

    def create_item(self, template_id: str, name: str, *, slug: str | None = None) -> ItemRow:
        if not self._store.query(TEMPLATES_TABLE, filters={"id": template_id}, limit=1):
            raise NotFoundError(f"Item template not found: {template_id}")
        record = self._item_record(
            template_id=template_id,
            name=name,
            slug=slugify(slug) if slug else None,
            language_code=None,
            base_item_id=None,
        )
        self._store.insert(ITEMS_TABLE, [record])
        return ItemRow.from_record(record)

    def create_override(self, base_item_id: str, locale: str) -> ItemRow:
        base = self.get_item(base_item_id)
        if base.is_override:
            raise ValidationError(f"Item {base_item_id} is itself a locale override")
        language_code = normalize_locale(locale)
        if self.find_override(base.id, language_code) is not None:
            raise ConflictError(f"Item {base.id} already has a {language_code} override")

        record = self._item_record(
            template_id=base.item_template_id,
            name=base.name,
            slug=base.slug,
            language_code=language_code,
            base_item_id=base.id,
        )
        self._store.insert(ITEMS_TABLE, [record])
        logger.info("Created %s override %s of item %s", language_code, record["id"], base.id)
        return ItemRow.from_record(record)

    @staticmethod
    def _item_record(
        *,
        template_id: str,
        name: str,
        slug: str | None,
        language_code: str | None,
        base_item_id: str | None,
    ) -> Record:
        now = utc_now_iso()
        return {
            "id": str(uuid4()),
            "item_template_id": template_id,
            "name": name,
            "slug": slug,
            "language_code": language_code,
            "base_item_id": base_item_id,
            "is_active": 1,
            "created_at": now,
            "updated_at": now,
        }

    def get_item(self, item_id: str) -> ItemRow:
        rows = self._store.query(ITEMS_TABLE, filters={"id": item_id}, limit=1)
        if not rows:
            raise NotFoundError(f"Content item not found: {item_id}")
        return ItemRow.from_record(rows[0])

    def find_override(self, base_item_id: str, locale: str) -> ItemRow | None:
        rows = self._store.query(
            ITEMS_TABLE,
            filters={"base_item_id": base_item_id, "language_code": locale},
            limit=1,
        )
        return ItemRow.from_record(rows[0]) if rows else None

    def list_overrides(self, base_item_id: str) -> list[ItemRow]:
        records = self._fetcher.fetch_all(
            Query(
                ITEMS_TABLE,
                filters={"base_item_id": base_item_id},
                order_by=("language_code", "id"),
            )
        )
        return [ItemRow.from_record(record) for record in records]

    # Item data

    def raw_item_data(self, item_id: str, fields: list[FieldRow]) -> dict[str, Any]:
        """Stored values of one item keyed by field key, undecoded by type."""

        keys_by_field_id = {field.id: field.field_key for field in fields}
        records = self._fetcher.fetch_all(
            Query(DATA_TABLE, filters={"item_id": item_id}, order_by=("id",))
        )
        data: dict[str, Any] = {}
        for record in records:
            field_key = keys_by_field_id.get(str(record["field_id"]))
            if field_key is None:
                continue
            data[field_key] = decode_value(record.get("value_json"))
        return data

    def set_item_data(self, item_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Write field values; an override only keeps its translatable fields."""

        item = self.get_item(item_id)
        fields = self.list_fields(item.item_template_id)
        known = {field.field_key for field in fields}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown fields for item {item_id}: {', '.join(unknown)}")

        saved: dict[str, Any] = {}
        for field in fields:
            if field.field_key not in data:
                continue
            if item.is_override and not field.is_translatable:
                logger.debug(
                    "Dropping non-translatable field %s written to override %s",
                    field.field_key,
                    item_id,
                )
                continue
            value = validate_value(field.field_key, field.field_type, data[field.field_key])
            self._upsert_value(item_id, field.id, value)
            saved[field.field_key] = value
        return saved

    def _upsert_value(self, item_id: str, field_id: str, value: Any) -> None:
        now = utc_now_iso()
        filters = {"item_id": item_id, "field_id": field_id}
        updated = self._store.update(
            DATA_TABLE, filters, {"value_json": encode_value(value), "updated_at": now}
        )
        if updated:
            return
        self._store.insert(
            DATA_TABLE,
            [
                {
                    "id": str(uuid4()),
                    "item_id": item_id,
                    "field_id": field_id,
                    "value_json": encode_value(value),
                    "created_at": now,
                    "updated_at": now,
                }
            ],
        )

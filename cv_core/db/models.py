from __future__ import annotations

from sqlmodel import Field, SQLModel
from sqlalchemy import Index


class SchemaMeta(SQLModel, table=True):
    __tablename__ = "schema_meta"

    key: str = Field(primary_key=True)
    value: str


class Language(SQLModel, table=True):
    __tablename__ = "languages"

    code: str = Field(primary_key=True)
    name: str
    native_name: str | None = None
    is_active: int = Field(default=1)
    created_at: str


class TranslationVersion(SQLModel, table=True):
    __tablename__ = "translation_versions"
    __table_args__ = (
        Index(
            "idx_translation_versions_chain",
            "key",
            "locale",
            "version_number",
            unique=True,
        ),
        Index("idx_translation_versions_locale_status", "locale", "status"),
    )

    id: str = Field(primary_key=True)
    key: str
    locale: str
    value: str
    version_number: int
    status: str = Field(default="pending")
    auto_translated: int = Field(default=0)
    created_at: str
    created_by: str
    reviewed_at: str | None = None
    reviewed_by: str | None = None
    review_notes: str | None = None
    previous_version_id: str | None = None


class ItemTemplate(SQLModel, table=True):
    __tablename__ = "item_templates"

    id: str = Field(primary_key=True)
    name: str
    slug: str = Field(unique=True)
    created_at: str
    updated_at: str


class ContentField(SQLModel, table=True):
    __tablename__ = "content_fields"
    __table_args__ = (
        Index(
            "idx_content_fields_template_key",
            "item_template_id",
            "field_key",
            unique=True,
        ),
    )

    id: str = Field(primary_key=True)
    item_template_id: str
    field_key: str
    label: str
    field_type: str
    is_required: int = Field(default=0)
    is_translatable: int = Field(default=0)
    order_index: int = Field(default=0)
    default_value_json: str | None = None


class ContentItem(SQLModel, table=True):
    __tablename__ = "content_items"
    __table_args__ = (
        Index(
            "idx_content_items_base_language",
            "base_item_id",
            "language_code",
            unique=True,
        ),
    )

    id: str = Field(primary_key=True)
    item_template_id: str
    name: str
    slug: str | None = None
    language_code: str | None = None
    base_item_id: str | None = None
    is_active: int = Field(default=1)
    created_at: str
    updated_at: str


class ContentItemData(SQLModel, table=True):
    __tablename__ = "content_item_data"
    __table_args__ = (
        Index("idx_content_item_data_item_field", "item_id", "field_id", unique=True),
    )

    id: str = Field(primary_key=True)
    item_id: str
    field_id: str
    value_json: str | None = None
    created_at: str
    updated_at: str


TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    model.__tablename__: tuple(model.model_fields)
    for model in (
        Language,
        TranslationVersion,
        ItemTemplate,
        ContentField,
        ContentItem,
        ContentItemData,
    )
}

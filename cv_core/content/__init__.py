"""Content items, their locale overrides and field-level inheritance."""

from cv_core.content.inheritance import InheritanceResolver, ResolvedItem
from cv_core.content.item_store import ContentRepository, FieldRow, ItemRow, TemplateRow

__all__ = [
    "ContentRepository",
    "FieldRow",
    "InheritanceResolver",
    "ItemRow",
    "ResolvedItem",
    "TemplateRow",
]

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from cv_core.content.field_values import validate_value
from cv_core.content.item_store import ContentRepository
from cv_core.i18n.fallback import resolve
from cv_core.i18n.locale import fallback_chain, normalize_locale

logger = logging.getLogger(__name__)

BASE_SOURCE = "base"


@dataclass(slots=True)
class ResolvedItem:
    item_id: str
    locale: str
    values: dict[str, Any] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)


class InheritanceResolver:
    """Effective field values of a content item for one locale.

    Overrides for the requested locale and its base language are merged with
    the usual fallback precedence, but only for translatable fields. Every
    other field, and every translatable field no override supplies, comes
    from the base item.
    """

    def __init__(self, repository: ContentRepository) -> None:
        self._repository = repository

    def resolve_item(self, item_id: str, locale: str) -> ResolvedItem:
        requested = normalize_locale(locale)
        item = self._repository.get_item(item_id)
        base = self._repository.get_item(item.base_item_id) if item.is_override else item

        fields = self._repository.list_fields(base.item_template_id)
        translatable = {f.field_key for f in fields if f.is_translatable}
        base_data = self._repository.raw_item_data(base.id, fields)

        override_maps: dict[str, dict[str, Any]] = {}
        for candidate in fallback_chain(requested, None):
            override = self._repository.find_override(base.id, candidate)
            if override is None:
                continue
            own = self._repository.raw_item_data(override.id, fields)
            override_maps[candidate] = {
                key: value
                for key, value in own.items()
                if key in translatable and value is not None
            }

        overrides = resolve(requested, override_maps, default_language=None)

        resolved = ResolvedItem(item_id=base.id, locale=requested)
        for content_field in fields:
            key = content_field.field_key
            if key in overrides:
                value = overrides.get(key)
                source = overrides.source_locale(key) or requested
            else:
                value = base_data.get(key, content_field.default_value)
                source = BASE_SOURCE
            resolved.values[key] = validate_value(key, content_field.field_type, value)
            resolved.sources[key] = source

        logger.debug(
            "Resolved item %s for %s with %d overridden fields",
            base.id,
            requested,
            sum(1 for source in resolved.sources.values() if source != BASE_SOURCE),
        )
        return resolved

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cv_core.i18n.locale import fallback_chain


@dataclass(slots=True)
class ResolvedTranslationSet:
    """Merged values for one requested locale plus where each one came from."""

    locale: str
    values: dict[str, Any] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def source_locale(self, key: str) -> str | None:
        return self.sources.get(key)

    def entries(self) -> list[tuple[str, Any, str]]:
        return [(key, self.values[key], self.sources[key]) for key in sorted(self.values)]


def resolve(
    requested_locale: str,
    per_locale_maps: Mapping[str, Mapping[str, Any]],
    *,
    default_language: str | None,
) -> ResolvedTranslationSet:
    """Merge per-locale maps: specific locale, then base language, then default.

    A later source only fills keys that are still missing; a key supplied by a
    higher-precedence locale is never overwritten. Keys absent everywhere are
    absent from the result.
    """

    resolved = ResolvedTranslationSet(locale=requested_locale)
    for locale in fallback_chain(requested_locale, default_language):
        for key, value in per_locale_maps.get(locale, {}).items():
            if key in resolved.values:
                continue
            resolved.values[key] = value
            resolved.sources[key] = locale
    return resolved

from __future__ import annotations

import re

from cv_core.constants import CORRUPTION_MARKER, LOCALE_SEPARATOR
from cv_core.errors import ValidationError

_LOCALE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})?$")
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*$")


def normalize_locale(locale: str) -> str:
    """Canonical form of a locale code: ``es_mx`` becomes ``es-MX``."""

    candidate = (locale or "").strip()
    if not _LOCALE_PATTERN.match(candidate):
        raise ValidationError(f"Invalid locale code: {locale!r}")

    language, _, region = candidate.replace("_", LOCALE_SEPARATOR).partition(LOCALE_SEPARATOR)
    if not region:
        return language.lower()
    if len(region) == 2:
        region = region.upper()
    elif len(region) == 4:
        region = region.title()
    return f"{language.lower()}{LOCALE_SEPARATOR}{region}"


def base_language(locale: str) -> str | None:
    if LOCALE_SEPARATOR not in locale:
        return None
    return locale.split(LOCALE_SEPARATOR, 1)[0]


def fallback_chain(locale: str, default_language: str | None) -> list[str]:
    """Locales consulted for ``locale``, highest precedence first."""

    chain = [locale]
    base = base_language(locale)
    if base is not None:
        chain.append(base)
    if default_language and default_language not in chain:
        chain.append(default_language)
    return chain


def is_corrupted_key(key: str) -> bool:
    return CORRUPTION_MARKER in key


def is_valid_key(key: str) -> bool:
    return bool(_KEY_PATTERN.match(key)) and not is_corrupted_key(key)


def validate_key(key: str) -> str:
    candidate = (key or "").strip()
    if not candidate:
        raise ValidationError("Translation key is required")
    if is_corrupted_key(candidate):
        raise ValidationError(f"Translation key contains the corruption marker: {key!r}")
    if not _KEY_PATTERN.match(candidate):
        raise ValidationError(
            f"Translation key must be a dot-delimited identifier: {key!r}"
        )
    return candidate

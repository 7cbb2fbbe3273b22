"""Locale helpers and fallback resolution."""

from cv_core.i18n.fallback import ResolvedTranslationSet, resolve
from cv_core.i18n.locale import (
    base_language,
    fallback_chain,
    is_corrupted_key,
    is_valid_key,
    normalize_locale,
    validate_key,
)

__all__ = [
    "ResolvedTranslationSet",
    "base_language",
    "fallback_chain",
    "is_corrupted_key",
    "is_valid_key",
    "normalize_locale",
    "resolve",
    "validate_key",
]

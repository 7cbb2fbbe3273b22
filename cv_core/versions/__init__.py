"""Versioned translations with review and rollback."""

from cv_core.versions.version_store import TranslationVersion, VersionStore

__all__ = ["TranslationVersion", "VersionStore"]

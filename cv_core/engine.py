"""Composition root wiring the store, version chains, fallback and content items."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cv_core.content.inheritance import InheritanceResolver, ResolvedItem
from cv_core.content.item_store import ContentRepository
from cv_core.errors import ValidationError
from cv_core.i18n.fallback import ResolvedTranslationSet, resolve
from cv_core.i18n.locale import fallback_chain, normalize_locale
from cv_core.io.export import ExportResult, export_translations
from cv_core.io.json_io import ImportResult, import_json
from cv_core.maintenance.corruption import CorruptionScanner
from cv_core.project.config import EngineConfig, read_config
from cv_core.project.workspace import WorkspaceLayout
from cv_core.store.base import BackingStore
from cv_core.store.batch_fetcher import BatchFetcher
from cv_core.store.sqlite_store import SqliteStore
from cv_core.versions.version_store import TranslationVersion, VersionStore

logger = logging.getLogger(__name__)

CLEANUP_STRATEGIES = ("purge", "repair")


@dataclass(slots=True)
class CleanupReport:
    strategy: str
    found: int = 0
    deleted: int = 0
    cleaned: int = 0
    failed: int = 0


@dataclass(slots=True)
class LocaleStatistics:
    locale: str
    total_keys: int
    approved: int
    pending: int
    missing: int

    @property
    def completion(self) -> float:
        if self.total_keys == 0:
            return 0.0
        return round(self.approved * 100.0 / self.total_keys, 1)


class ContentVersioningEngine:
    """Single entry point for every request the request surface can make."""

    def __init__(
        self,
        store: BackingStore,
        config: EngineConfig | None = None,
        *,
        workspace_path: Path | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store
        self.workspace_path = workspace_path
        self.fetcher = BatchFetcher(
            store,
            page_size=self.config.page_size,
            max_batches=self.config.max_batches,
        )
        self.versions = VersionStore(
            store, self.fetcher, default_actor=self.config.default_actor
        )
        self.content = ContentRepository(store, self.fetcher)
        self.inheritance = InheritanceResolver(self.content)
        self.scanner = CorruptionScanner(store, self.fetcher)

    @classmethod
    def from_workspace(cls, workspace_path: Path) -> ContentVersioningEngine:
        layout = WorkspaceLayout(Path(workspace_path))
        if not layout.config_path.exists():
            raise FileNotFoundError(f"Workspace config not found: {layout.config_path}")
        config = read_config(layout.config_path)
        store = SqliteStore.open(layout.db_path, row_cap=config.store_row_cap)
        return cls(store, config, workspace_path=layout.path)

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> ContentVersioningEngine:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # Resolution

    def get_translations(self, locale: str) -> ResolvedTranslationSet:
        requested = normalize_locale(locale)
        chain = fallback_chain(requested, self.config.default_language)
        per_locale = {candidate: self.versions.approved_map(candidate) for candidate in chain}
        resolved = resolve(
            requested,
            per_locale,
            default_language=self.config.default_language,
        )
        logger.debug("Resolved %d keys for %s via %s", len(resolved), requested, chain)
        return resolved

    def get_content_item(self, item_id: str, locale: str) -> ResolvedItem:
        return self.inheritance.resolve_item(item_id, locale)

    # Version workflow

    def propose_translation(
        self,
        key: str,
        locale: str,
        value: str,
        auto_translated: bool = False,
        *,
        created_by: str | None = None,
    ) -> str:
        return self.versions.propose_version(
            key, locale, value, auto_translated, created_by=created_by
        )

    def approve(
        self, version_id: str, notes: str | None = None, *, reviewed_by: str | None = None
    ) -> bool:
        return self.versions.approve(version_id, notes, reviewed_by=reviewed_by)

    def reject(self, version_id: str, notes: str, *, reviewed_by: str | None = None) -> bool:
        return self.versions.reject(version_id, notes, reviewed_by=reviewed_by)

    def rollback(
        self,
        key: str,
        locale: str,
        target_version_number: int,
        *,
        created_by: str | None = None,
    ) -> str:
        return self.versions.rollback(
            key, locale, target_version_number, created_by=created_by
        )

    def batch_approve(
        self,
        version_ids: Iterable[str],
        notes: str | None = None,
        *,
        reviewed_by: str | None = None,
    ) -> int:
        return self.versions.batch_approve(version_ids, notes, reviewed_by=reviewed_by)

    def get_pending_queue(self, locale: str | None = None) -> list[TranslationVersion]:
        return self.versions.pending(locale)

    def get_history(self, key: str, locale: str) -> list[TranslationVersion]:
        return self.versions.history(key, locale)

    def get_all_keys(self) -> list[str]:
        return self.versions.all_keys()

    def delete_translation_key(self, key: str) -> int:
        return self.versions.delete_key(key)

    # Maintenance

    def cleanup_corrupted_keys(self, strategy: str) -> CleanupReport:
        normalized = (strategy or "").strip().lower()
        if normalized not in CLEANUP_STRATEGIES:
            raise ValidationError("strategy must be 'purge' or 'repair'")

        corrupted = self.scanner.scan_store()
        report = CleanupReport(strategy=normalized, found=len(corrupted))
        if not corrupted:
            return report

        if normalized == "purge":
            report.deleted = self.scanner.purge(corrupted)
        else:
            repaired = self.scanner.repair(corrupted)
            report.cleaned = repaired.cleaned
            report.failed = repaired.failed

        logger.info(
            "Cleanup (%s) over %d corrupted keys: %d deleted, %d cleaned, %d failed",
            normalized,
            report.found,
            report.deleted,
            report.cleaned,
            report.failed,
        )
        return report

    def get_statistics(self) -> list[LocaleStatistics]:
        locales = self.config.enabled_locales or [self.config.default_language]
        total_keys = len(self.versions.all_keys())
        statistics: list[LocaleStatistics] = []
        for locale in locales:
            approved = len(self.versions.approved_map(locale))
            pending = len(self.versions.pending(locale))
            statistics.append(
                LocaleStatistics(
                    locale=locale,
                    total_keys=total_keys,
                    approved=approved,
                    pending=pending,
                    missing=max(total_keys - approved, 0),
                )
            )
        return statistics

    # Import / export

    def import_json(
        self,
        locale: str,
        nested: Mapping[str, Any],
        *,
        approve: bool = False,
        created_by: str | None = None,
    ) -> ImportResult:
        return import_json(
            self.versions, locale, nested, approve=approve, created_by=created_by
        )

    def export_translations(
        self,
        locale: str,
        file_format: str,
        output_dir: Path | None = None,
    ) -> ExportResult:
        if output_dir is None:
            if self.workspace_path is None:
                raise ValidationError("output_dir is required outside a workspace")
            output_dir = WorkspaceLayout(self.workspace_path).exports_dir
        return export_translations(
            self.get_translations(locale),
            file_format=file_format,
            output_dir=output_dir,
        )

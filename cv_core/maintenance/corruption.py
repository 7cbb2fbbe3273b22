from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from cv_core.constants import CORRUPTION_MARKER
from cv_core.errors import EngineError
from cv_core.i18n.locale import is_valid_key
from cv_core.store.base import BackingStore, Contains, Query
from cv_core.store.batch_fetcher import BatchFetcher

logger = logging.getLogger(__name__)

VERSIONS_TABLE = "translation_versions"
_REPEATED_DOTS = re.compile(r"\.{2,}")


@dataclass(slots=True)
class RepairReport:
    cleaned: int = 0
    failed: int = 0


def clean_key(key: str, marker: str = CORRUPTION_MARKER) -> str:
    cleaned = _REPEATED_DOTS.sub(".", key.replace(marker, ""))
    return cleaned.strip(".").strip()


class CorruptionScanner:
    """Find, repair or purge keys carrying a stringified-object marker."""

    def __init__(
        self,
        store: BackingStore,
        fetcher: BatchFetcher,
        *,
        marker: str = CORRUPTION_MARKER,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self.marker = marker

    def is_corrupted(self, key: str) -> bool:
        return self.marker in key

    def find_corrupted(self, all_keys: Iterable[str]) -> list[str]:
        return sorted({key for key in all_keys if self.is_corrupted(key)})

    def scan_store(self) -> list[str]:
        records = self._fetcher.fetch_all(
            Query(
                VERSIONS_TABLE,
                filters={"key": Contains(self.marker)},
                order_by=("key", "id"),
                columns=("id", "key"),
            )
        )
        return self.find_corrupted(str(record["key"]) for record in records)

    def purge(self, keys: Iterable[str]) -> int:
        deleted = 0
        failed = 0
        for key in keys:
            if not self.is_corrupted(key):
                logger.warning("Refusing to purge legitimate key %s", key)
                continue
            try:
                deleted += self._store.delete(VERSIONS_TABLE, {"key": key})
            except EngineError as exc:
                failed += 1
                logger.warning("Could not purge %r: %s", key, exc)
        logger.info("Purged %d versions under corrupted keys, %d keys failed", deleted, failed)
        return deleted

    def repair(self, keys: Iterable[str]) -> RepairReport:
        report = RepairReport()
        for key in keys:
            if not self.is_corrupted(key):
                continue

            try:
                records = self._fetcher.fetch_all(
                    Query(VERSIONS_TABLE, filters={"key": key}, order_by=("id",), columns=("id",))
                )
            except EngineError as exc:
                report.failed += 1
                logger.warning("Could not read versions under %r: %s", key, exc)
                continue

            candidate = clean_key(key, self.marker)
            if not is_valid_key(candidate):
                logger.warning("No legitimate key can be derived from %r", key)
                report.failed += len(records)
                continue

            for record in records:
                try:
                    self._store.update(VERSIONS_TABLE, {"id": record["id"]}, {"key": candidate})
                except EngineError as exc:
                    report.failed += 1
                    logger.warning(
                        "Could not move version %s from %r to %r: %s",
                        record["id"],
                        key,
                        candidate,
                        exc,
                    )
                    continue
                report.cleaned += 1

        logger.info("Repair finished: %d cleaned, %d failed", report.cleaned, report.failed)
        return report

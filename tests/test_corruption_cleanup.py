from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from cv_core.errors import StoreUnavailableError
from cv_core.maintenance import CorruptionScanner, clean_key
from cv_core.store import BatchFetcher, SqliteStore


def _record(key: str, *, locale: str = "en", number: int = 1, value: str = "v") -> dict:
    return {
        "id": f"{key}|{locale}|{number}",
        "key": key,
        "locale": locale,
        "value": value,
        "version_number": number,
        "status": "approved",
        "auto_translated": 0,
        "created_at": "2024-01-01T00:00:00Z",
        "created_by": "seed",
    }


class FlakyStore(SqliteStore):
    """Fails every read and delete that targets one particular key."""

    broken_key = "a[object Object]"

    def delete(self, table, filters):
        if filters.get("key") == self.broken_key:
            raise StoreUnavailableError("connection reset")
        return super().delete(table, filters)

    def query(self, table, **kwargs):
        if (kwargs.get("filters") or {}).get("key") == self.broken_key:
            raise StoreUnavailableError("connection reset")
        return super().query(table, **kwargs)


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[SqliteStore]:
    opened = SqliteStore.open(tmp_path / "content.db")
    yield opened
    opened.close()


@pytest.fixture()
def scanner(store: SqliteStore) -> CorruptionScanner:
    return CorruptionScanner(store, BatchFetcher(store))


def test_detects_marker_only(scanner: CorruptionScanner) -> None:
    assert scanner.is_corrupted("card[object Object]title")
    assert not scanner.is_corrupted("card.title.abc")
    assert scanner.find_corrupted(
        ["card.title.abc", "b[object Object]", "a[object Object].x", "b[object Object]"]
    ) == ["a[object Object].x", "b[object Object]"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("card[object Object]title", "cardtitle"),
        ("card.[object Object].title", "card.title"),
        ("[object Object].menu.label", "menu.label"),
        ("menu.[object Object]", "menu"),
        ("[object Object]", ""),
    ],
)
def test_clean_key(raw: str, expected: str) -> None:
    assert clean_key(raw) == expected


def test_scan_store_lists_each_corrupted_key_once(
    store: SqliteStore, scanner: CorruptionScanner
) -> None:
    store.insert(
        "translation_versions",
        [
            _record("card.[object Object].title"),
            _record("card.[object Object].title", locale="fr"),
            _record("card.title"),
        ],
    )

    assert scanner.scan_store() == ["card.[object Object].title"]


def test_purge_deletes_only_corrupted_records(
    store: SqliteStore, scanner: CorruptionScanner
) -> None:
    store.insert(
        "translation_versions",
        [
            _record("card.[object Object].title"),
            _record("card.[object Object].title", number=2),
            _record("card.title"),
        ],
    )

    deleted = scanner.purge(["card.[object Object].title", "card.title"])

    assert deleted == 2
    assert [row["key"] for row in store.query("translation_versions")] == ["card.title"]


def test_repair_moves_records_and_counts_conflicts(
    store: SqliteStore, scanner: CorruptionScanner
) -> None:
    store.insert(
        "translation_versions",
        [
            _record("menu.[object Object].label", number=1, value="Menu"),
            _record("menu.[object Object].label", number=2, value="Main menu"),
            _record("menu.label", number=2, value="Existing"),
            _record("[object Object]", value="lost"),
        ],
    )

    report = scanner.repair(scanner.scan_store())

    assert report.cleaned == 1
    assert report.failed == 2

    rows = store.query("translation_versions", order_by=("key", "version_number"))
    assert [(row["key"], row["version_number"], row["value"]) for row in rows] == [
        ("[object Object]", 1, "lost"),
        ("menu.[object Object].label", 2, "Main menu"),
        ("menu.label", 1, "Menu"),
        ("menu.label", 2, "Existing"),
    ]


@pytest.fixture()
def flaky_store(tmp_path: Path) -> Iterator[FlakyStore]:
    opened = FlakyStore.open(tmp_path / "flaky.db")
    opened.insert(
        "translation_versions",
        [
            _record("a[object Object]"),
            _record("b.[object Object].label", number=1),
            _record("b.[object Object].label", number=2),
        ],
    )
    yield opened
    opened.close()


def test_purge_keeps_going_after_a_store_failure(flaky_store: FlakyStore) -> None:
    scanner = CorruptionScanner(flaky_store, BatchFetcher(flaky_store))

    deleted = scanner.purge(["a[object Object]", "b.[object Object].label"])

    assert deleted == 2
    assert [row["key"] for row in flaky_store.query("translation_versions")] == [
        "a[object Object]"
    ]


def test_repair_keeps_going_after_a_store_failure(flaky_store: FlakyStore) -> None:
    scanner = CorruptionScanner(flaky_store, BatchFetcher(flaky_store))

    report = scanner.repair(["a[object Object]", "b.[object Object].label"])

    assert report.cleaned == 2
    assert report.failed == 1
    keys = {row["key"] for row in flaky_store.query("translation_versions")}
    assert keys == {"a[object Object]", "b.label"}

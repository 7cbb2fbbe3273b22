from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from cv_core.errors import StoreUnavailableError, ValidationError
from cv_core.store import BatchFetcher, Query


class CappedListStore:
    """In-memory store that caps every read, recording each page it serves."""

    def __init__(self, records: list[dict[str, Any]], *, row_cap: int = 1000) -> None:
        self.records = records
        self.row_cap = row_cap
        self.pages: list[int] = []

    def query(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int = 0,
        columns: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        size = self.row_cap if limit is None else min(limit, self.row_cap)
        page = [dict(record) for record in self.records[offset : offset + size]]
        self.pages.append(len(page))
        return page


class FullPageStore(CappedListStore):
    """Misbehaving store that ignores the offset and always returns a full page."""

    def query(self, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        limit = kwargs.get("limit") or self.row_cap
        self.pages.append(limit)
        return [{"id": index} for index in range(limit)]


class FailingStore(CappedListStore):
    def __init__(self, records: list[dict[str, Any]], *, fail_on_page: int) -> None:
        super().__init__(records)
        self.fail_on_page = fail_on_page

    def query(self, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        if len(self.pages) + 1 == self.fail_on_page:
            raise StoreUnavailableError("connection reset")
        return super().query(table, **kwargs)


def _records(count: int) -> list[dict[str, Any]]:
    return [{"id": f"r{index:05d}"} for index in range(count)]


def test_fetch_all_reads_2500_records_in_three_pages() -> None:
    store = CappedListStore(_records(2500))
    fetcher = BatchFetcher(store)

    records = fetcher.fetch_all(Query("translation_versions"))

    assert store.pages == [1000, 1000, 500]
    assert len(records) == 2500
    assert len({record["id"] for record in records}) == 2500


def test_exact_multiple_of_page_size_needs_one_empty_page() -> None:
    store = CappedListStore(_records(2000))

    records = BatchFetcher(store).fetch_all(Query("translation_versions"))

    assert store.pages == [1000, 1000, 0]
    assert len(records) == 2000


def test_each_call_starts_fresh() -> None:
    store = CappedListStore(_records(5))
    fetcher = BatchFetcher(store, page_size=2)
    query = Query("translation_versions")

    first = fetcher.fetch_all(query)
    second = list(fetcher.iter_records(query))

    assert first == second
    assert store.pages == [2, 2, 1, 2, 2, 1]


def test_batch_ceiling_stops_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    store = FullPageStore([])
    fetcher = BatchFetcher(store, page_size=10, max_batches=3)

    with caplog.at_level(logging.WARNING, logger="cv_core.store.batch_fetcher"):
        records = fetcher.fetch_all(Query("translation_versions"))

    assert len(records) == 30
    assert store.pages == [10, 10, 10]
    assert "may be incomplete" in caplog.text


def test_page_error_aborts_the_whole_fetch() -> None:
    store = FailingStore(_records(2500), fail_on_page=2)
    fetcher = BatchFetcher(store)

    with pytest.raises(StoreUnavailableError):
        fetcher.fetch_all(Query("translation_versions"))


@pytest.mark.parametrize(("page_size", "max_batches"), [(0, 50), (1000, 0)])
def test_rejects_non_positive_bounds(page_size: int, max_batches: int) -> None:
    with pytest.raises(ValidationError):
        BatchFetcher(CappedListStore([]), page_size=page_size, max_batches=max_batches)

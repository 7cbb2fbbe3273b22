from __future__ import annotations

import logging
from collections.abc import Iterator

from cv_core.constants import BATCH_PAGE_SIZE, MAX_BATCHES
from cv_core.errors import ValidationError
from cv_core.store.base import BackingStore, Query, Record

logger = logging.getLogger(__name__)


class BatchFetcher:
    """Pull a complete result set out of a store that caps every response.

    The same query is reissued with a growing offset until a page comes back
    shorter than ``page_size``. ``max_batches`` bounds the loop in case the
    store keeps returning full pages.
    """

    def __init__(
        self,
        store: BackingStore,
        *,
        page_size: int = BATCH_PAGE_SIZE,
        max_batches: int = MAX_BATCHES,
    ) -> None:
        if page_size < 1:
            raise ValidationError("page_size must be at least 1")
        if max_batches < 1:
            raise ValidationError("max_batches must be at least 1")
        self._store = store
        self.page_size = page_size
        self.max_batches = max_batches

    def iter_records(self, query: Query) -> Iterator[Record]:
        offset = 0
        for batch_number in range(1, self.max_batches + 1):
            page = self._store.query(
                query.table,
                filters=query.filters,
                order_by=query.order_by,
                limit=self.page_size,
                offset=offset,
                columns=query.columns,
            )
            logger.debug(
                "Fetched batch %d from %s: %d records", batch_number, query.table, len(page)
            )
            yield from page

            if len(page) < self.page_size:
                return
            offset += self.page_size

        logger.warning(
            "Stopped fetching %s after %d batches of %d; result may be incomplete",
            query.table,
            self.max_batches,
            self.page_size,
        )

    def fetch_all(self, query: Query) -> list[Record]:
        records = list(self.iter_records(query))
        logger.info("Fetched %d records from %s", len(records), query.table)
        return records

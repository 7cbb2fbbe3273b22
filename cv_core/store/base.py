from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

Record = dict[str, Any]


@dataclass(slots=True, frozen=True)
class Contains:
    """Substring filter value, matched literally."""

    text: str


@dataclass(slots=True, frozen=True)
class Query:
    """A read against one table, reissued page by page by the batch fetcher."""

    table: str
    filters: Mapping[str, Any] = field(default_factory=dict)
    order_by: tuple[str, ...] = ("id",)
    columns: tuple[str, ...] | None = None


class BackingStore(Protocol):
    """Capability set the engine needs from the system of record.

    Filters map a column to a value: a scalar means equality, ``None`` means
    IS NULL, a list or tuple means IN and :class:`Contains` means substring.
    Order entries are column names, prefixed with ``-`` for descending.
    """

    def query(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int = 0,
        columns: Sequence[str] | None = None,
    ) -> list[Record]: ...

    def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[Record]: ...

    def update(
        self,
        table: str,
        filters: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> list[Record]: ...

    def delete(self, table: str, filters: Mapping[str, Any]) -> int: ...

    def call_procedure(self, name: str, params: Mapping[str, Any]) -> Any: ...

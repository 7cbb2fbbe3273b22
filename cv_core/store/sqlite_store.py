from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from cv_core.constants import STORE_ROW_CAP
from cv_core.db.models import TABLE_COLUMNS
from cv_core.db.engine import initialize_database
from cv_core.errors import ConflictError, NotFoundError, StoreUnavailableError, ValidationError
from cv_core.store.base import Contains, Record
from cv_core.store.procedures import PROCEDURES

logger = logging.getLogger(__name__)

_PRIMARY_KEYS = {"languages": "code"}


def _primary_key(table: str) -> str:
    return _PRIMARY_KEYS.get(table, "id")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_table(table: str) -> tuple[str, ...]:
    columns = TABLE_COLUMNS.get(table)
    if columns is None:
        raise ValidationError(f"Unknown table: {table}")
    return columns


def _check_columns(table: str, names: Sequence[str]) -> None:
    allowed = _check_table(table)
    for name in names:
        if name not in allowed:
            raise ValidationError(f"Unknown column for {table}: {name}")


def build_where(
    table: str,
    filters: Mapping[str, Any] | None,
    params: dict[str, Any],
    *,
    prefix: str = "f",
) -> str:
    if not filters:
        return ""

    _check_columns(table, list(filters))
    clauses: list[str] = []
    for index, (column, value) in enumerate(filters.items()):
        name = f"{prefix}{index}"
        if value is None:
            clauses.append(f"{column} IS NULL")
        elif isinstance(value, Contains):
            params[name] = f"%{_escape_like(value.text)}%"
            clauses.append(f"{column} LIKE :{name} ESCAPE '\\'")
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                clauses.append("0 = 1")
                continue
            names = []
            for position, item in enumerate(values):
                item_name = f"{name}_{position}"
                params[item_name] = item
                names.append(f":{item_name}")
            clauses.append(f"{column} IN ({', '.join(names)})")
        else:
            params[name] = value
            clauses.append(f"{column} = :{name}")
    return " WHERE " + " AND ".join(clauses)


def build_order_by(table: str, order_by: Sequence[str]) -> str:
    if not order_by:
        return ""
    parts: list[str] = []
    for entry in order_by:
        descending = entry.startswith("-")
        column = entry[1:] if descending else entry
        _check_columns(table, [column])
        parts.append(f"{column} DESC" if descending else f"{column} ASC")
    return " ORDER BY " + ", ".join(parts)


class SqliteStore:
    """SQLite implementation of the backing store capability set.

    Like the hosted store it stands in for, every read is silently capped at
    ``row_cap`` rows no matter what limit the caller asks for.
    """

    def __init__(self, engine: Engine, *, row_cap: int = STORE_ROW_CAP) -> None:
        if row_cap < 1:
            raise ValidationError("row_cap must be at least 1")
        self._engine = engine
        self.row_cap = row_cap

    @classmethod
    def open(cls, db_path: Path, *, row_cap: int = STORE_ROW_CAP) -> SqliteStore:
        return cls(initialize_database(Path(db_path)), row_cap=row_cap)

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        self._engine.dispose()

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    @contextmanager
    def _begin(self) -> Iterator[Connection]:
        try:
            with self._engine.begin() as connection:
                yield connection
        except IntegrityError as exc:
            raise ConflictError(f"Store rejected write: {exc.orig}") from exc
        except DBAPIError as exc:
            raise StoreUnavailableError(f"Store call failed: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Store call failed: {exc}") from exc

    def query(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int = 0,
        columns: Sequence[str] | None = None,
    ) -> list[Record]:
        all_columns = _check_table(table)
        selected = tuple(columns) if columns else all_columns
        _check_columns(table, selected)

        params: dict[str, Any] = {}
        where = build_where(table, filters, params)
        order = build_order_by(table, order_by)
        params["limit"] = self.row_cap if limit is None else min(limit, self.row_cap)
        params["offset"] = max(offset, 0)

        statement = (
            f"SELECT {', '.join(selected)} FROM {table}{where}{order} "
            "LIMIT :limit OFFSET :offset"
        )
        with self._begin() as connection:
            rows = connection.execute(text(statement), params).mappings().all()
        return [dict(row) for row in rows]

    def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        if not records:
            return []

        inserted: list[Record] = []
        with self._begin() as connection:
            for record in records:
                names = list(record)
                _check_columns(table, names)
                placeholders = ", ".join(f":{name}" for name in names)
                connection.execute(
                    text(f"INSERT INTO {table}({', '.join(names)}) VALUES ({placeholders})"),
                    dict(record),
                )
                inserted.append(dict(record))
        return inserted

    def update(
        self,
        table: str,
        filters: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> list[Record]:
        if not filters:
            raise ValidationError("update requires at least one filter")
        if not patch:
            return []
        _check_columns(table, list(patch))

        pk = _primary_key(table)
        params: dict[str, Any] = {}
        where = build_where(table, filters, params)
        update_params = dict(params)
        assignments = []
        for index, (column, value) in enumerate(patch.items()):
            update_params[f"p{index}"] = value
            assignments.append(f"{column} = :p{index}")

        with self._begin() as connection:
            ids = connection.execute(
                text(f"SELECT {pk} FROM {table}{where}"), params
            ).scalars().all()
            if not ids:
                return []
            connection.execute(
                text(f"UPDATE {table} SET {', '.join(assignments)}{where}"), update_params
            )
            id_params: dict[str, Any] = {}
            id_where = build_where(table, {pk: list(ids)}, id_params)
            rows = connection.execute(
                text(f"SELECT * FROM {table}{id_where}"), id_params
            ).mappings().all()
        return [dict(row) for row in rows]

    def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        if not filters:
            raise ValidationError("delete requires at least one filter")
        params: dict[str, Any] = {}
        where = build_where(table, filters, params)
        with self._begin() as connection:
            result = connection.execute(text(f"DELETE FROM {table}{where}"), params)
            deleted = int(result.rowcount or 0)
        return deleted

    def call_procedure(self, name: str, params: Mapping[str, Any]) -> Any:
        procedure = PROCEDURES.get(name)
        if procedure is None:
            raise NotFoundError(f"Unknown store procedure: {name}")
        logger.debug("Calling store procedure %s", name)
        with self._begin() as connection:
            return procedure(connection, **params)

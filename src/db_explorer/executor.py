from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Iterable, Mapping, TypeVar

from sqlalchemy import inspect, text
from sqlalchemy.engine import CursorResult, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from .errors import PrimaryKeyError, QueryError, RecordNotFoundError
from .logging_utils import log_extra
from .pagination import Pagination
from .schema import ColumnDescriptor, SchemaCatalog
from .validator import FieldValue

T = TypeVar("T")

Record = dict[str, FieldValue]


def decode_value(value: Any, column: ColumnDescriptor | None) -> Any:
    """Convert one driver value into the record value domain.

    String-like columns always yield ``str`` or ``None``; any other column
    passes the driver value through untouched.
    """
    if column is None or not column.is_string:
        return value
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def decode_row(row: Mapping[str, Any], columns: Iterable[ColumnDescriptor]) -> Record:
    by_name = {column.name: column for column in columns}
    return {name: decode_value(value, by_name.get(name)) for name, value in row.items()}


def _driver_message(exc: Exception) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


def _returned_key(result: CursorResult[Any]) -> Any:
    return result.scalar_one()


def _last_row_id(result: CursorResult[Any]) -> Any:
    return result.lastrowid


class CrudExecutor:
    """Runs the generated list/get/create/update/delete statements.

    Table and column identifiers are interpolated into the statement text;
    callers only pass names taken from the schema catalog, the primary key
    constraint, or a validated field map. Values are always bound.
    """

    def __init__(self, engine: Engine, catalog: SchemaCatalog) -> None:
        self._engine = engine
        self._catalog = catalog
        self._log = logging.getLogger(__name__)

    def resolve_primary_key(self, table: str, request_id: str | None = None) -> str:
        try:
            constraint = inspect(self._engine).get_pk_constraint(table)
        except SQLAlchemyError as exc:
            self._log.warning(
                "Primary key lookup failed",
                extra=log_extra(request_id=request_id, table=table, error_message=str(exc)),
            )
            raise QueryError(f"Primary key lookup failed: {_driver_message(exc)}") from exc

        columns = (constraint or {}).get("constrained_columns") or []
        if len(columns) != 1:
            raise PrimaryKeyError(
                f"Table {table} must have exactly one primary key column, found {len(columns)}"
            )
        return columns[0]

    def list_records(
        self, table: str, pagination: Pagination, request_id: str | None = None
    ) -> list[Record]:
        columns = self._catalog.columns_of(table)
        sql = f"SELECT * FROM {table} LIMIT :limit OFFSET :offset"
        rows = self._execute(
            sql,
            {"limit": pagination.limit, "offset": pagination.offset},
            lambda result: [dict(row) for row in result.mappings()],
            table=table,
            request_id=request_id,
        )
        try:
            return [decode_row(row, columns) for row in rows]
        except UnicodeDecodeError as exc:
            raise QueryError(f"Could not decode rows of {table}") from exc

    def get_record(
        self,
        table: str,
        primary_key: str,
        key_value: Any,
        request_id: str | None = None,
    ) -> Record:
        columns = self._catalog.columns_of(table)
        sql = f"SELECT * FROM {table} WHERE {primary_key} = :key"
        row = self._execute(
            sql,
            {"key": key_value},
            lambda result: result.mappings().first(),
            table=table,
            request_id=request_id,
        )
        if row is None:
            raise RecordNotFoundError()
        try:
            return decode_row(dict(row), columns)
        except UnicodeDecodeError as exc:
            raise RecordNotFoundError() from exc

    def create_record(
        self,
        table: str,
        fields: Mapping[str, FieldValue],
        primary_key: str,
        request_id: str | None = None,
    ) -> Any:
        names = list(fields)
        params = {f"p{i}": fields[name] for i, name in enumerate(names)}
        if names:
            placeholders = ", ".join(f":p{i}" for i in range(len(names)))
            sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})"
        elif self._engine.dialect.name in ("mysql", "mariadb"):
            sql = f"INSERT INTO {table} () VALUES ()"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"

        if self._engine.dialect.insert_returning:
            sql = f"{sql} RETURNING {primary_key}"
            consume = _returned_key
        else:
            consume = _last_row_id

        return self._execute(sql, params, consume, table=table, request_id=request_id)

    def update_record(
        self,
        table: str,
        fields: Mapping[str, FieldValue],
        primary_key: str,
        key_value: Any,
        request_id: str | None = None,
    ) -> int:
        if not fields:
            return 0
        names = list(fields)
        assignments = ", ".join(f"{name} = :p{i}" for i, name in enumerate(names))
        params: dict[str, Any] = {f"p{i}": fields[name] for i, name in enumerate(names)}
        params["key"] = key_value
        sql = f"UPDATE {table} SET {assignments} WHERE {primary_key} = :key"
        return self._execute(
            sql, params, lambda result: result.rowcount, table=table, request_id=request_id
        )

    def delete_record(
        self,
        table: str,
        primary_key: str,
        key_value: Any,
        request_id: str | None = None,
    ) -> int:
        sql = f"DELETE FROM {table} WHERE {primary_key} = :key"
        return self._execute(
            sql,
            {"key": key_value},
            lambda result: result.rowcount,
            table=table,
            request_id=request_id,
        )

    def _execute(
        self,
        sql: str,
        params: Mapping[str, Any],
        consume: Callable[[CursorResult[Any]], T],
        table: str | None = None,
        request_id: str | None = None,
    ) -> T:
        """
        Run one statement in its own transaction and hand the result to ``consume``.

        The result is consumed before the transaction commits, so ``consume``
        may fetch rows, RETURNING values or the row count.

        Raises:
        QueryError: If the engine rejects the statement
        """
        statement_type = sql.split(None, 1)[0].upper()
        query_id = str(uuid.uuid4())

        try:
            with self._engine.begin() as connection:
                result = connection.execute(text(sql), dict(params))
                value = consume(result)
        except (SQLAlchemyError, OverflowError) as exc:
            self._log.warning(
                "Statement failed",
                extra=log_extra(
                    request_id=request_id,
                    query_id=query_id,
                    statement_type=statement_type,
                    table=table,
                    error_message=str(exc),
                ),
            )
            raise QueryError(_driver_message(exc)) from exc

        self._log.info(
            "Statement executed",
            extra=log_extra(
                request_id=request_id,
                query_id=query_id,
                statement_type=statement_type,
                table=table,
            ),
        )
        return value

"""Request handlers exposing every discovered table as a CRUD resource."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any

from sqlalchemy.engine import Engine
from starlette.requests import Request
from starlette.responses import Response

from .config import PaginationConfig
from .errors import (
    FieldValidationError,
    MalformedPayloadError,
    PrimaryKeyError,
    QueryError,
    RecordNotFoundError,
    UnknownTableError,
)
from .executor import CrudExecutor
from .logging_utils import log_extra
from .pagination import INTEGER_TEXT, get_pagination
from .responses import failure, internal_error, success
from .router import Router
from .schema import ColumnDescriptor, SchemaCatalog, SemanticType
from .validator import CREATE_OPTIONS, UPDATE_OPTIONS, validate_fields

TABLE = r"(?P<table>[^/]+)"
ITEM_ID = r"(?P<item_id>[^/]+)"


def _request_id(request: Request) -> str:
    """Reuse the caller's request ID for tracing or generate one."""
    return request.headers.get("x-request-id") or str(uuid.uuid4())


_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def coerce_key(columns: tuple[ColumnDescriptor, ...], primary_key: str, raw: str) -> Any:
    """Bind path keys of numeric primary keys as integers.

    Returns ``None`` when the key cannot possibly match a row: text that is
    not an integer, or an integer outside the signed 64-bit range.
    """
    column = next((c for c in columns if c.name == primary_key), None)
    if column is None or column.semantic_type is not SemanticType.NUMERIC:
        return raw
    if not INTEGER_TEXT.fullmatch(raw):
        return None
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


async def read_payload(request: Request) -> dict[str, Any]:
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise MalformedPayloadError(str(exc)) from exc
    if not isinstance(payload, dict):
        raise MalformedPayloadError("payload must be a JSON object")
    return payload


class DbExplorer:
    """Schema-driven CRUD service.

    Construction discovers the schema (``StartupError`` on failure) and
    registers the fixed route table. ``dispatch`` is the single entry point
    for every HTTP request.
    """

    def __init__(self, engine: Engine, pagination: PaginationConfig | None = None) -> None:
        self._log = logging.getLogger(__name__)
        self._pagination = pagination or PaginationConfig()
        self.catalog = SchemaCatalog(engine)
        self.executor = CrudExecutor(engine, self.catalog)
        self.router = Router()
        self._init_routes()

    def _init_routes(self) -> None:
        self.router.handle("GET", "/", self.handle_list_tables)
        self.router.handle("GET", f"/{TABLE}", self.handle_list_items)
        self.router.handle("GET", f"/{TABLE}/{ITEM_ID}", self.handle_get_item)
        self.router.handle("PUT", f"/{TABLE}/?", self.handle_create_item)
        self.router.handle("DELETE", f"/{TABLE}/{ITEM_ID}", self.handle_delete_item)
        self.router.handle("POST", f"/{TABLE}/{ITEM_ID}", self.handle_update_item)

    async def dispatch(self, request: Request) -> Response:
        rid = _request_id(request)
        request.state.request_id = rid
        try:
            response = await self.router.dispatch(request)
        except Exception:
            self._log.exception(
                "Unhandled error",
                extra=log_extra(request_id=rid, method=request.method, path=request.url.path),
            )
            response = internal_error()
        self._log.info(
            "Request handled",
            extra=log_extra(
                request_id=rid,
                method=request.method,
                path=request.url.path,
                status=response.status_code,
            ),
        )
        return response

    def _table(self, table: str) -> tuple[ColumnDescriptor, ...]:
        if not self.catalog.is_known_table(table):
            raise UnknownTableError(table)
        return self.catalog.columns_of(table)

    async def handle_list_tables(self, request: Request) -> Response:
        return success({"tables": self.catalog.table_names})

    async def handle_list_items(self, request: Request, table: str) -> Response:
        try:
            self._table(table)
        except UnknownTableError as exc:
            return failure(404, str(exc))

        pagination = get_pagination(request.query_params, self._pagination)
        try:
            records = await asyncio.to_thread(
                self.executor.list_records, table, pagination, request.state.request_id
            )
        except QueryError:
            return internal_error()
        return success({"records": records})

    async def handle_get_item(self, request: Request, table: str, item_id: str) -> Response:
        rid = request.state.request_id
        try:
            columns = self._table(table)
        except UnknownTableError as exc:
            return failure(404, str(exc))

        try:
            primary_key = await asyncio.to_thread(self.executor.resolve_primary_key, table, rid)
            key_value = coerce_key(columns, primary_key, item_id)
            if key_value is None:
                raise RecordNotFoundError()
            record = await asyncio.to_thread(
                self.executor.get_record, table, primary_key, key_value, rid
            )
        except RecordNotFoundError as exc:
            return failure(404, str(exc))
        except (PrimaryKeyError, QueryError):
            return internal_error()
        return success({"record": record})

    async def handle_create_item(self, request: Request, table: str) -> Response:
        rid = request.state.request_id
        try:
            columns = self._table(table)
        except UnknownTableError as exc:
            return failure(404, str(exc))

        try:
            payload = await read_payload(request)
        except MalformedPayloadError as exc:
            return failure(400, str(exc))

        try:
            primary_key = await asyncio.to_thread(self.executor.resolve_primary_key, table, rid)
        except (PrimaryKeyError, QueryError):
            return internal_error()

        try:
            fields = validate_fields(payload, columns, primary_key, CREATE_OPTIONS)
            new_id = await asyncio.to_thread(
                self.executor.create_record, table, fields, primary_key, rid
            )
        except (FieldValidationError, QueryError) as exc:
            return failure(400, str(exc))
        return success({primary_key: new_id})

    async def handle_update_item(self, request: Request, table: str, item_id: str) -> Response:
        rid = request.state.request_id
        try:
            columns = self._table(table)
        except UnknownTableError as exc:
            return failure(404, str(exc))

        try:
            payload = await read_payload(request)
        except MalformedPayloadError as exc:
            return failure(400, str(exc))

        try:
            primary_key = await asyncio.to_thread(self.executor.resolve_primary_key, table, rid)
        except (PrimaryKeyError, QueryError):
            return internal_error()

        try:
            fields = validate_fields(payload, columns, primary_key, UPDATE_OPTIONS)
            key_value = coerce_key(columns, primary_key, item_id)
            updated = 0
            if key_value is not None:
                updated = await asyncio.to_thread(
                    self.executor.update_record, table, fields, primary_key, key_value, rid
                )
        except (FieldValidationError, QueryError) as exc:
            return failure(400, str(exc))
        return success({"updated": updated})

    async def handle_delete_item(self, request: Request, table: str, item_id: str) -> Response:
        rid = request.state.request_id
        try:
            columns = self._table(table)
        except UnknownTableError as exc:
            return failure(404, str(exc))

        try:
            primary_key = await asyncio.to_thread(self.executor.resolve_primary_key, table, rid)
            key_value = coerce_key(columns, primary_key, item_id)
            deleted = 0
            if key_value is not None:
                deleted = await asyncio.to_thread(
                    self.executor.delete_record, table, primary_key, key_value, rid
                )
        except (PrimaryKeyError, QueryError):
            return internal_error()
        return success({"deleted": deleted})

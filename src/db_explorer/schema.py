"""Schema catalog discovered from the live database at startup."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import CompileError, SQLAlchemyError
from sqlalchemy.types import Integer, Numeric, String, TypeEngine

from .errors import StartupError, UnknownTableError
from .logging_utils import log_extra


class SemanticType(str, enum.Enum):
    NUMERIC = "numeric"
    STRING = "string"
    OTHER = "other"


def classify_type(column_type: TypeEngine[Any]) -> SemanticType:
    """Collapse a reflected column type into the tag the validator checks against."""
    if isinstance(column_type, (Integer, Numeric)):
        return SemanticType.NUMERIC
    if isinstance(column_type, String):
        return SemanticType.STRING
    return SemanticType.OTHER


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    type_name: str
    semantic_type: SemanticType
    nullable: bool

    @property
    def is_string(self) -> bool:
        return self.semantic_type is SemanticType.STRING


def _render_type(column_type: TypeEngine[Any], engine: Engine) -> str:
    try:
        return column_type.compile(dialect=engine.dialect)
    except CompileError:  # unsupported types still need a printable name
        return type(column_type).__name__.upper()


class SchemaCatalog:
    """Read-only table/column catalog built once in the constructor.

    Any failure while listing tables or reading columns aborts construction
    with ``StartupError``.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._log = logging.getLogger(__name__)
        try:
            names = self.list_tables()
            self._columns: dict[str, tuple[ColumnDescriptor, ...]] = {
                name: self._read_columns(name) for name in names
            }
        except SQLAlchemyError as exc:
            self._log.error(
                "Schema discovery failed",
                extra=log_extra(error_message=str(exc)),
            )
            raise StartupError(f"Schema discovery failed: {exc}") from exc
        self._names = list(self._columns)
        self._log.info(
            "Schema catalog loaded",
            extra=log_extra(table_count=len(self._names)),
        )

    def list_tables(self) -> list[str]:
        names = inspect(self._engine).get_table_names()
        return list(dict.fromkeys(names))

    def _read_columns(self, table: str) -> tuple[ColumnDescriptor, ...]:
        reflected = inspect(self._engine).get_columns(table)
        if not reflected:
            raise StartupError(f"Table {table} has no readable columns")
        return tuple(
            ColumnDescriptor(
                name=col["name"],
                type_name=_render_type(col["type"], self._engine),
                semantic_type=classify_type(col["type"]),
                nullable=bool(col.get("nullable", True)),
            )
            for col in reflected
        )

    @property
    def table_names(self) -> list[str]:
        return list(self._names)

    def is_known_table(self, name: str) -> bool:
        return name in self._columns

    def columns_of(self, table: str) -> tuple[ColumnDescriptor, ...]:
        try:
            return self._columns[table]
        except KeyError as exc:
            raise UnknownTableError(table) from exc

"""Field-by-field validation of submitted payloads against the column catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from .errors import FieldValidationError
from .schema import ColumnDescriptor, SemanticType

FieldValue = Union[int, float, str, bool, None]

_TYPE_DEFAULTS: dict[SemanticType, FieldValue] = {
    SemanticType.NUMERIC: 0,
    SemanticType.STRING: "",
    SemanticType.OTHER: False,
}


@dataclass(frozen=True)
class ValidationOptions:
    ignore_primary_key: bool = False
    ignore_missing_fields: bool = False
    substitute_defaults: bool = False


CREATE_OPTIONS = ValidationOptions(
    ignore_primary_key=True,
    ignore_missing_fields=False,
    substitute_defaults=True,
)

UPDATE_OPTIONS = ValidationOptions(
    ignore_primary_key=False,
    ignore_missing_fields=True,
    substitute_defaults=False,
)


def type_default(column: ColumnDescriptor) -> FieldValue:
    return _TYPE_DEFAULTS[column.semantic_type]


def matches_column(value: Any, column: ColumnDescriptor) -> bool:
    """Check the runtime kind of a decoded JSON value against a column."""
    if value is None:
        return column.nullable
    # bool is an int subclass, so it has to be tested first
    if isinstance(value, bool):
        return column.semantic_type is SemanticType.OTHER
    if isinstance(value, (int, float)):
        return column.semantic_type is SemanticType.NUMERIC
    if isinstance(value, str):
        return column.semantic_type is SemanticType.STRING
    return False


def validate_fields(
    submitted: Mapping[str, Any],
    columns: Iterable[ColumnDescriptor],
    primary_key: str,
    options: ValidationOptions,
) -> dict[str, FieldValue]:
    """Return the sanitized field map for ``columns``.

    Keys of ``submitted`` that are not columns are ignored. The primary key
    never appears in the result: it is dropped when
    ``options.ignore_primary_key`` is set and rejected otherwise.

    Raises:
        FieldValidationError: naming the first offending column.
    """
    sanitized: dict[str, FieldValue] = {}
    for column in columns:
        if column.name == primary_key:
            if column.name in submitted and not options.ignore_primary_key:
                raise FieldValidationError(column.name)
            continue

        if column.name in submitted:
            value = submitted[column.name]
            if not matches_column(value, column):
                raise FieldValidationError(column.name)
            sanitized[column.name] = value
            continue

        if options.ignore_missing_fields:
            continue
        if column.nullable:
            sanitized[column.name] = None
        elif options.substitute_defaults:
            sanitized[column.name] = type_default(column)
        else:
            raise FieldValidationError(column.name)
    return sanitized

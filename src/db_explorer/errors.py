class ConfigError(ValueError):
    """Configuration is missing or invalid."""


class StartupError(RuntimeError):
    """Schema discovery failed while constructing the service."""


class UnknownTableError(LookupError):
    """Requested table is not part of the discovered schema."""

    def __init__(self, table: str) -> None:
        super().__init__("unknown table")
        self.table = table


class FieldValidationError(ValueError):
    """Submitted field does not match the column type or nullability."""

    def __init__(self, field: str) -> None:
        super().__init__(f"field {field} have invalid type")
        self.field = field


class MalformedPayloadError(ValueError):
    """Request body is not a JSON object."""


class RecordNotFoundError(LookupError):
    """No row matches the requested primary key."""

    def __init__(self) -> None:
        super().__init__("record not found")


class PrimaryKeyError(RuntimeError):
    """Table has no primary key or a composite one."""


class QueryError(RuntimeError):
    """Statement execution failed in a user-facing way."""

from __future__ import annotations

import logging
from typing import Any

_SQL_LOGGER = "sqlalchemy.engine"


def configure_logging(level: str, echo_sql: bool = False) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # statement text is only interesting when explicitly requested
    logging.getLogger(_SQL_LOGGER).setLevel(logging.INFO if echo_sql else logging.WARNING)


def log_extra(**kwargs: Any) -> dict[str, Any]:
    """Build an ``extra`` mapping for log records, dropping unset values."""
    return {k: v for k, v in kwargs.items() if v is not None}

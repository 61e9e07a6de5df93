from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .config import DatabaseConfig


def build_engine(config: DatabaseConfig) -> Engine:
    """Create the pooled engine shared by the catalog and the executor.

    Pool sizing is forwarded only when configured, since some dialects
    (in-memory SQLite for one) reject it.
    """
    kwargs: dict[str, Any] = {
        "echo": config.echo,
        "pool_pre_ping": config.pool_pre_ping,
    }
    if config.pool_size is not None:
        kwargs["pool_size"] = config.pool_size
    if config.max_overflow is not None:
        kwargs["max_overflow"] = config.max_overflow
    if config.connect_args:
        kwargs["connect_args"] = dict(config.connect_args)
    return create_engine(config.url, **kwargs)

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError


@dataclass
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_pre_ping: bool = True
    pool_size: int | None = None
    max_overflow: int | None = None
    connect_args: dict[str, Any] = field(default_factory=dict)


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class PaginationConfig:
    default_limit: int = 5
    default_offset: int = 0
    max_limit: int = -1


@dataclass
class ObservabilityConfig:
    log_level: str = "info"


@dataclass
class AppConfig:
    database: DatabaseConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


def _resolve_env(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        expanded = os.path.expandvars(value)
        if expanded.startswith("${") and expanded.endswith("}"):
            key = expanded[2:-1]
            if key not in env:
                raise ConfigError(f"Environment variable {key} is required but not set")
            return env[key]
        return expanded
    if isinstance(value, list):
        return [_resolve_env(v, env) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v, env) for k, v in value.items()}
    return value


def _non_negative(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc
    if number < 0:
        raise ConfigError(f"{field_name} must not be negative")
    return number


def _positive_or_unlimited(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc
    if number == -1:
        return number
    if number <= 0:
        raise ConfigError(f"{field_name} must be greater than 0 or -1 for no limit")
    return number


def _optional_positive(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    return _positive_or_unlimited(value, field_name)


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> AppConfig:
    env = env if env is not None else os.environ
    raw = yaml.safe_load(Path(path).read_text()) or {}
    resolved = _resolve_env(raw, env)

    try:
        database_raw = resolved["database"]
    except KeyError as exc:
        raise ConfigError(f"Missing config section: {exc.args[0]}") from exc
    server_raw = resolved.get("server") or {}
    pagination_raw = resolved.get("pagination") or {}
    observability_raw = resolved.get("observability") or {}

    url = database_raw.get("url")
    if not url:
        raise ConfigError("database.url is required")

    connect_args = database_raw.get("connect_args") or {}
    if not isinstance(connect_args, dict):
        raise ConfigError("database.connect_args must be a mapping")

    database = DatabaseConfig(
        url=str(url),
        echo=bool(database_raw.get("echo", False)),
        pool_pre_ping=bool(database_raw.get("pool_pre_ping", True)),
        pool_size=_optional_positive(database_raw.get("pool_size"), "pool_size"),
        max_overflow=(
            _non_negative(database_raw["max_overflow"], "max_overflow")
            if database_raw.get("max_overflow") is not None
            else None
        ),
        connect_args=connect_args,
    )

    port = _non_negative(server_raw.get("port", 8000), "port")
    if not 0 < port < 65536:
        raise ConfigError("port must be between 1 and 65535")
    server = ServerConfig(host=str(server_raw.get("host", "0.0.0.0")), port=port)

    pagination = PaginationConfig(
        default_limit=_non_negative(pagination_raw.get("default_limit", 5), "default_limit"),
        default_offset=_non_negative(pagination_raw.get("default_offset", 0), "default_offset"),
        max_limit=_positive_or_unlimited(pagination_raw.get("max_limit", -1), "max_limit"),
    )

    observability = ObservabilityConfig(
        log_level=str(observability_raw.get("log_level", "info")),
    )

    return AppConfig(
        database=database,
        server=server,
        pagination=pagination,
        observability=observability,
    )

"""FastAPI application factory and entry point for the database explorer.

Every method and path is forwarded to a single ``DbExplorer`` instance, whose
own router decides which handler runs.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from sqlalchemy.engine import Engine

from .config import AppConfig, load_config
from .db import build_engine
from .explorer import DbExplorer
from .logging_utils import configure_logging

_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _config_path() -> Path:
    """Get the configuration file path from environment or default."""
    path = os.environ.get("DB_EXPLORER_CONFIG", "config.yml")
    return Path(path)


def build_app(config: AppConfig, engine: Engine | None = None) -> FastAPI:
    """Create the application for an already loaded configuration.

    Args:
        config: Application configuration.
        engine: Optional engine to use instead of building one from ``config.database``.

    Returns:
        FastAPI: application serving the discovered tables.

    Raises:
        StartupError: If the schema cannot be read.
    """
    configure_logging(config.observability.log_level, echo_sql=config.database.echo)
    engine = engine or build_engine(config.database)
    explorer = DbExplorer(engine, config.pagination)

    app = FastAPI(
        title="DB Explorer",
        description="Generic CRUD API over the tables of a relational database",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.explorer = explorer

    @app.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def explore(request: Request):
        return await explorer.dispatch(request)

    return app


def create_app(config_path: Path | None = None) -> FastAPI:
    """Load the configuration file and build the application.

    Args:
        config_path: Optional path to config file. If None, uses ``DB_EXPLORER_CONFIG``.
    """
    if config_path is None:
        config_path = _config_path()
    return build_app(load_config(config_path))


def main() -> None:
    """Start the explorer using uvicorn.

    Host and port default to the ``server`` section of the configuration and
    can be overridden on the command line.
    """
    parser = argparse.ArgumentParser(description="Serve database tables over HTTP")
    parser.add_argument("--config", type=Path, default=None, help="Path to the YAML config file")
    parser.add_argument("--host", default=None, help="Interface to bind (default: from config)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: from config)")
    args = parser.parse_args()

    config_path = args.config or _config_path()
    config = load_config(config_path)
    app = build_app(config)

    uvicorn.run(
        app,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
    )


if __name__ == "__main__":
    main()

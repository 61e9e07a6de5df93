from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from db_explorer.config import AppConfig, DatabaseConfig
from db_explorer.server import build_app

SCHEMA = [
    """
    CREATE TABLE items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title VARCHAR(255) NOT NULL,
        description TEXT NOT NULL,
        updated TEXT NULL
    )
    """,
    """
    CREATE TABLE users (
        user_id INTEGER PRIMARY KEY AUTOINCREMENT,
        login VARCHAR(255) NOT NULL UNIQUE,
        password VARCHAR(255) NOT NULL,
        email VARCHAR(255) NOT NULL,
        info TEXT NOT NULL,
        updated VARCHAR(255) NULL
    )
    """,
]

SEED = [
    "INSERT INTO items (title, description, updated) VALUES ('database/sql', 'Рассказать про базы данных', 'rvasily')",
    "INSERT INTO items (title, description, updated) VALUES ('memcache', 'Рассказать про мемкеш с примером использования', NULL)",
    "INSERT INTO items (title, description, updated) VALUES ('redis', 'Кеш на редисе', NULL)",
    "INSERT INTO users (login, password, email, info, updated) VALUES ('rvasily', 'love', 'rvasily@example.com', 'none', NULL)",
]


def make_engine(path: Path, statements: list[str]) -> Engine:
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    with engine.begin() as connection:
        for statement in statements:
            connection.execute(text(statement))
    return engine


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = make_engine(tmp_path / "explorer.db", SCHEMA + SEED)
    yield engine
    engine.dispose()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'explorer.db'}"))


@pytest.fixture
def client(engine: Engine, config: AppConfig) -> TestClient:
    app = build_app(config, engine=engine)
    return TestClient(app)

import os
from pathlib import Path
from typing import Iterator

import pytest
from alembic.config import Config
from alembic import command


@pytest.fixture(scope="session")
def db_url() -> Iterator[str]:
    """Start a Postgres container, run migrations, and return the DB URL."""
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16") as pg:
        raw_url = pg.get_connection_url()
        # Normalize to psycopg3-compatible URL if needed
        url = raw_url.replace("postgresql+psycopg2://", "postgresql://")
        os.environ["DATABASE_URL"] = url

        repo_dir = Path(__file__).resolve().parents[2]
        alembic_cfg = Config(str(repo_dir / "alembic.ini"))
        command.upgrade(alembic_cfg, "head")

        yield url


@pytest.fixture
def clean_users(db_url: str) -> Iterator[None]:
    """Empty the users table around each test."""
    from questionbank.db.connection import get_db_cursor

    with get_db_cursor() as cursor:
        cursor.execute("DELETE FROM users")
    yield
    with get_db_cursor() as cursor:
        cursor.execute("DELETE FROM users")

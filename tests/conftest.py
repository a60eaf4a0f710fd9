"""Shared fixtures for checkpoint storage tests."""

import logging
from pathlib import Path

import pytest
import structlog

from checkpoint_storage.config import MySQLStorageConfig, PostgresStorageConfig
from checkpoint_storage.persistence import (
    TABLE_NAME,
    CheckpointProvider,
    MySQLCheckpointProvider,
    PostgresCheckpointProvider,
    SQLiteCheckpointProvider,
)


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo logging configuration done by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def postgres_config() -> PostgresStorageConfig:
    """Start a PostgreSQL container for the test session."""
    try:
        from testcontainers.postgres import PostgresContainer

        container = PostgresContainer("postgres:16-alpine")
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")

    yield PostgresStorageConfig(connection_string=container.get_connection_url())
    container.stop()


@pytest.fixture(scope="session")
def mysql_config() -> MySQLStorageConfig:
    """Start a MySQL container for the test session."""
    try:
        from testcontainers.mysql import MySqlContainer

        container = MySqlContainer("mysql:8.0")
        container.start()
    except Exception as e:
        pytest.skip(f"MySQL container unavailable: {e}")

    yield MySQLStorageConfig(connection_string=container.get_connection_url())
    container.stop()


async def _reset_postgres(provider: PostgresCheckpointProvider) -> None:
    async with provider._connection("reset table") as conn:
        await conn.execute(f'TRUNCATE "{TABLE_NAME}" RESTART IDENTITY')


async def _reset_mysql(provider: MySQLCheckpointProvider) -> None:
    async with provider._cursor("reset table") as cur:
        await cur.execute(f"TRUNCATE TABLE `{TABLE_NAME}`")


@pytest.fixture(
    params=[
        "sqlite",
        pytest.param("mysql", marks=pytest.mark.integration),
        pytest.param("postgres", marks=pytest.mark.integration),
    ]
)
async def provider(request: pytest.FixtureRequest, tmp_path: Path) -> CheckpointProvider:
    """A started provider with an empty checkpoint table."""
    backend = request.param
    if backend == "sqlite":
        store: CheckpointProvider = SQLiteCheckpointProvider(tmp_path / "checkpoints.db")
        await store.ensure_schema()
    elif backend == "mysql":
        store = MySQLCheckpointProvider.from_config(request.getfixturevalue("mysql_config"))
        await store.ensure_schema()
        await _reset_mysql(store)
    else:
        store = PostgresCheckpointProvider.from_config(request.getfixturevalue("postgres_config"))
        await store.ensure_schema()
        await _reset_postgres(store)

    yield store
    await store.close()


@pytest.fixture
async def sqlite_provider(tmp_path: Path) -> SQLiteCheckpointProvider:
    """A started SQLite provider backed by a temporary file."""
    store = SQLiteCheckpointProvider(tmp_path / "checkpoints.db")
    await store.ensure_schema()
    yield store


async def _insert_raw_sqlite(store: SQLiteCheckpointProvider, values: tuple) -> str:
    async with store._connect() as db:
        cursor = await db.execute(
            f"""
            INSERT INTO "{TABLE_NAME}" ("agentId", "name", "config", "state", "createdAt")
            VALUES (?, ?, ?, ?, ?)
            """,
            values,
        )
        await db.commit()
        return str(cursor.lastrowid)


async def _insert_raw_mysql(store: MySQLCheckpointProvider, values: tuple) -> str:
    async with store._cursor("insert raw row") as cur:
        await cur.execute(
            f"""
            INSERT INTO `{TABLE_NAME}` (`agentId`, `name`, `config`, `state`, `createdAt`)
            VALUES (%s, %s, %s, %s, %s)
            """,
            values,
        )
        return str(cur.lastrowid)


async def _insert_raw_postgres(store: PostgresCheckpointProvider, values: tuple) -> str:
    async with store._connection("insert raw row") as conn:
        row_id = await conn.fetchval(
            f"""
            INSERT INTO "{TABLE_NAME}" ("agentId", "name", "config", "state", "createdAt")
            VALUES ($1, $2, $3, $4, $5)
            RETURNING "id"
            """,
            *values,
        )
        return str(row_id)


@pytest.fixture
def insert_raw_row():
    """Write column text straight to the table, bypassing payload encoding.

    Returns an async callable ``(provider, config_text, state_text) -> id``.
    """

    async def _insert(
        store: CheckpointProvider,
        config_text: str,
        state_text: str,
        *,
        agent_id: str = "agent",
        name: str = "raw",
        created_at: int = 1000,
    ) -> str:
        values = (agent_id, name, config_text, state_text, created_at)
        if isinstance(store, SQLiteCheckpointProvider):
            return await _insert_raw_sqlite(store, values)
        if isinstance(store, MySQLCheckpointProvider):
            return await _insert_raw_mysql(store, values)
        return await _insert_raw_postgres(store, values)

    return _insert

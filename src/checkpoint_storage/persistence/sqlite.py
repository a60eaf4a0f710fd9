"""SQLite-based checkpoint persistence."""

import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from checkpoint_storage.config import SQLiteStorageConfig
from checkpoint_storage.exceptions import ConnectivityError, SchemaError, StorageError
from checkpoint_storage.logging_config import get_logger
from checkpoint_storage.models import CheckpointListItem, NamedCheckpoint, StoredCheckpoint
from checkpoint_storage.persistence.base import (
    TABLE_NAME,
    CheckpointProvider,
    encode_checkpoint,
    row_to_list_item,
    row_to_stored_checkpoint,
)
from checkpoint_storage.serialization import parse_checkpoint_id

logger = get_logger(__name__)

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS "{TABLE_NAME}" (
    "id"        INTEGER PRIMARY KEY AUTOINCREMENT,
    "agentId"   TEXT    NOT NULL,
    "name"      TEXT    NOT NULL,
    "config"    TEXT    NOT NULL,
    "state"     TEXT    NOT NULL,
    "createdAt" INTEGER NOT NULL
)
"""


class SQLiteCheckpointProvider(CheckpointProvider):
    """SQLite implementation of checkpoint storage.

    A connection is opened per operation and closed when it completes, so the
    provider holds no handle between calls.
    """

    backend = "sqlite"

    def __init__(self, db_path: Path) -> None:
        """Initialize SQLite checkpoint provider.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)

    @classmethod
    def from_config(cls, config: SQLiteStorageConfig) -> "SQLiteCheckpointProvider":
        return cls(config.database_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(self.db_path)
        except (OSError, sqlite3.Error) as e:
            raise ConnectivityError(f"Cannot open SQLite database {self.db_path}: {e}") from e

        try:
            db.row_factory = aiosqlite.Row
            yield db
        finally:
            await db.close()

    async def ensure_schema(self) -> None:
        """Create the checkpoint table."""
        async with self._connect() as db:
            try:
                await db.execute(CREATE_TABLE_SQL)
                await db.commit()
            except sqlite3.Error as e:
                raise SchemaError(f"Cannot create {TABLE_NAME} table: {e}") from e

        logger.debug("schema_ensured", backend=self.backend, path=str(self.db_path))

    async def store_checkpoint(self, checkpoint: NamedCheckpoint) -> str:
        """Save a checkpoint."""
        config_text, state_text = encode_checkpoint(checkpoint)

        async with self._connect() as db:
            try:
                cursor = await db.execute(
                    f"""
                    INSERT INTO "{TABLE_NAME}"
                    ("agentId", "name", "config", "state", "createdAt")
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        checkpoint.agent_id,
                        checkpoint.name,
                        config_text,
                        state_text,
                        checkpoint.created_at,
                    ),
                )
                await db.commit()
            except sqlite3.Error as e:
                raise StorageError(f"Cannot store checkpoint: {e}") from e
            checkpoint_id = str(cursor.lastrowid)

        logger.debug(
            "checkpoint_stored",
            backend=self.backend,
            checkpoint_id=checkpoint_id,
            agent_id=checkpoint.agent_id,
        )
        return checkpoint_id

    async def retrieve_checkpoint(self, checkpoint_id: str) -> Optional[StoredCheckpoint]:
        """Get a checkpoint."""
        key = parse_checkpoint_id(checkpoint_id)
        if key is None:
            return None

        async with self._connect() as db:
            try:
                cursor = await db.execute(
                    f'SELECT * FROM "{TABLE_NAME}" WHERE "id" = ? LIMIT 1',
                    (key,),
                )
                row = await cursor.fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Cannot retrieve checkpoint {checkpoint_id}: {e}") from e

        if row is None:
            return None
        return row_to_stored_checkpoint(row)

    async def list_checkpoints(self) -> list[CheckpointListItem]:
        """List checkpoints."""
        async with self._connect() as db:
            try:
                cursor = await db.execute(
                    f"""
                    SELECT "id", "agentId", "name", "createdAt"
                    FROM "{TABLE_NAME}"
                    ORDER BY "createdAt" DESC, "id" DESC
                    """
                )
                rows = await cursor.fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Cannot list checkpoints: {e}") from e

        return [row_to_list_item(row) for row in rows]

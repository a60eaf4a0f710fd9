"""PostgreSQL-based checkpoint persistence."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from checkpoint_storage.config import PostgresStorageConfig
from checkpoint_storage.exceptions import (
    ConfigurationError,
    ConnectivityError,
    SchemaError,
    StorageError,
)
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
    "id"        bigserial PRIMARY KEY NOT NULL,
    "agentId"   text      NOT NULL,
    "name"      text      NOT NULL,
    "config"    text      NOT NULL,
    "state"     text      NOT NULL,
    "createdAt" bigint    NOT NULL
)
"""

CONNECTIVITY_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InvalidAuthorizationSpecificationError,
    asyncpg.exceptions.InvalidCatalogNameError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)

# Concurrent CREATE TABLE IF NOT EXISTS can lose the race on the catalog.
CREATE_RACE_ERRORS = (
    asyncpg.exceptions.UniqueViolationError,
    asyncpg.exceptions.DuplicateTableError,
)


class PostgresCheckpointProvider(CheckpointProvider):
    """PostgreSQL implementation of checkpoint storage backed by an asyncpg pool."""

    backend = "postgres"

    def __init__(
        self,
        connection_string: str,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: Optional[float] = 60,
    ) -> None:
        """Initialize PostgreSQL checkpoint provider.

        The pool is created on first use.

        Args:
            connection_string: PostgreSQL URL or DSN
            min_size: Minimum number of pooled connections
            max_size: Maximum number of pooled connections
            command_timeout: Per-statement timeout in seconds
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None
        self._pool_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: PostgresStorageConfig) -> "PostgresCheckpointProvider":
        return cls(config.connection_string)

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                try:
                    self._pool = await asyncpg.create_pool(
                        self.connection_string,
                        min_size=self.min_size,
                        max_size=self.max_size,
                        command_timeout=self.command_timeout,
                    )
                except CONNECTIVITY_ERRORS as e:
                    raise ConnectivityError(f"Cannot connect to PostgreSQL: {e}") from e
                except ValueError as e:
                    raise ConfigurationError(f"Invalid PostgreSQL connection string: {e}") from e
                logger.debug("pool_created", backend=self.backend)
        return self._pool

    @asynccontextmanager
    async def _connection(
        self, action: str, error_cls: type[StorageError] = StorageError
    ) -> AsyncIterator[asyncpg.Connection]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                yield conn
        except CONNECTIVITY_ERRORS as e:
            raise ConnectivityError(f"Lost PostgreSQL connection while trying to {action}: {e}") from e
        except asyncpg.PostgresError as e:
            raise error_cls(f"Cannot {action}: {e}") from e

    async def ensure_schema(self) -> None:
        """Create the checkpoint table."""
        async with self._connection(f"create {TABLE_NAME} table", SchemaError) as conn:
            try:
                await conn.execute(CREATE_TABLE_SQL)
            except CREATE_RACE_ERRORS:
                logger.debug("schema_created_concurrently", backend=self.backend)

        logger.debug("schema_ensured", backend=self.backend)

    async def store_checkpoint(self, checkpoint: NamedCheckpoint) -> str:
        """Save a checkpoint."""
        config_text, state_text = encode_checkpoint(checkpoint)

        async with self._connection("store checkpoint") as conn:
            row_id = await conn.fetchval(
                f"""
                INSERT INTO "{TABLE_NAME}"
                ("agentId", "name", "config", "state", "createdAt")
                VALUES ($1, $2, $3, $4, $5)
                RETURNING "id"
                """,
                checkpoint.agent_id,
                checkpoint.name,
                config_text,
                state_text,
                checkpoint.created_at,
            )

        checkpoint_id = str(row_id)
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

        async with self._connection(f"retrieve checkpoint {checkpoint_id}") as conn:
            row = await conn.fetchrow(
                f'SELECT * FROM "{TABLE_NAME}" WHERE "id" = $1 LIMIT 1',
                key,
            )

        if row is None:
            return None
        return row_to_stored_checkpoint(row)

    async def list_checkpoints(self) -> list[CheckpointListItem]:
        """List checkpoints."""
        async with self._connection("list checkpoints") as conn:
            rows = await conn.fetch(
                f"""
                SELECT "id", "agentId", "name", "createdAt"
                FROM "{TABLE_NAME}"
                ORDER BY "createdAt" DESC, "id" DESC
                """
            )

        return [row_to_list_item(row) for row in rows]

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.debug("provider_closed", backend=self.backend)

"""MySQL-based checkpoint persistence."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import unquote

import aiomysql
from pydantic import MySQLDsn

from checkpoint_storage.config import MySQLStorageConfig
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

# longtext: payloads routinely exceed the 64 KiB limit of MySQL's text type.
CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS `{TABLE_NAME}` (
    `id`        bigint AUTO_INCREMENT NOT NULL,
    `agentId`   text                  NOT NULL,
    `name`      text                  NOT NULL,
    `config`    longtext              NOT NULL,
    `state`     longtext              NOT NULL,
    `createdAt` bigint                NOT NULL,
    CONSTRAINT `{TABLE_NAME}_id` PRIMARY KEY (`id`)
) DEFAULT CHARSET = utf8mb4
"""

# Client and server error codes meaning the server could not be reached or
# refused the session.
CONNECTIVITY_ERROR_CODES = frozenset(
    {
        1040,  # ER_CON_COUNT_ERROR
        1044,  # ER_DBACCESS_DENIED_ERROR
        1045,  # ER_ACCESS_DENIED_ERROR
        1049,  # ER_BAD_DB_ERROR
        2002,  # CR_CONNECTION_ERROR
        2003,  # CR_CONN_HOST_ERROR
        2005,  # CR_UNKNOWN_HOST
        2006,  # CR_SERVER_GONE_ERROR
        2013,  # CR_SERVER_LOST
    }
)

DEFAULT_PORT = 3306


class MySQLCheckpointProvider(CheckpointProvider):
    """MySQL implementation of checkpoint storage backed by an aiomysql pool."""

    backend = "mysql"

    def __init__(
        self,
        connection_string: MySQLDsn,
        minsize: int = 1,
        maxsize: int = 10,
        connect_timeout: float = 10,
    ) -> None:
        """Initialize MySQL checkpoint provider.

        The pool is created on first use.

        Args:
            connection_string: Validated MySQL URL
            minsize: Minimum number of pooled connections
            maxsize: Maximum number of pooled connections
            connect_timeout: Seconds to wait for a new connection
        """
        self.connection_string = connection_string
        self.minsize = minsize
        self.maxsize = maxsize
        self.connect_timeout = connect_timeout
        self._pool: Optional[aiomysql.Pool] = None
        self._pool_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: MySQLStorageConfig) -> "MySQLCheckpointProvider":
        return cls(config.connection_string)

    def _connect_kwargs(self) -> dict:
        url = self.connection_string
        return {
            "host": url.host or "localhost",
            "port": url.port or DEFAULT_PORT,
            "user": unquote(url.username) if url.username else None,
            "password": unquote(url.password) if url.password else "",
            "db": (url.path or "").lstrip("/") or None,
        }

    async def _get_pool(self) -> aiomysql.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                try:
                    self._pool = await aiomysql.create_pool(
                        minsize=self.minsize,
                        maxsize=self.maxsize,
                        connect_timeout=self.connect_timeout,
                        autocommit=True,
                        charset="utf8mb4",
                        **self._connect_kwargs(),
                    )
                except (OSError, asyncio.TimeoutError, aiomysql.OperationalError) as e:
                    raise ConnectivityError(f"Cannot connect to MySQL: {e}") from e
                logger.debug("pool_created", backend=self.backend)
        return self._pool

    @asynccontextmanager
    async def _cursor(
        self,
        action: str,
        error_cls: type[StorageError] = StorageError,
        cursor_cls: type = aiomysql.Cursor,
    ) -> AsyncIterator[aiomysql.Cursor]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.cursor(cursor_cls) as cur:
                    yield cur
        except (OSError, asyncio.TimeoutError) as e:
            raise ConnectivityError(f"Lost MySQL connection while trying to {action}: {e}") from e
        except aiomysql.OperationalError as e:
            if e.args and e.args[0] in CONNECTIVITY_ERROR_CODES:
                raise ConnectivityError(
                    f"Lost MySQL connection while trying to {action}: {e}"
                ) from e
            raise error_cls(f"Cannot {action}: {e}") from e
        except aiomysql.InterfaceError as e:
            # Raised by the client on a closed or broken connection.
            raise ConnectivityError(f"Lost MySQL connection while trying to {action}: {e}") from e
        except aiomysql.Error as e:
            raise error_cls(f"Cannot {action}: {e}") from e

    async def ensure_schema(self) -> None:
        """Create the checkpoint table."""
        async with self._cursor(f"create {TABLE_NAME} table", SchemaError) as cur:
            await cur.execute(CREATE_TABLE_SQL)

        logger.debug("schema_ensured", backend=self.backend)

    async def store_checkpoint(self, checkpoint: NamedCheckpoint) -> str:
        """Save a checkpoint."""
        config_text, state_text = encode_checkpoint(checkpoint)

        async with self._cursor("store checkpoint") as cur:
            await cur.execute(
                f"""
                INSERT INTO `{TABLE_NAME}`
                (`agentId`, `name`, `config`, `state`, `createdAt`)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (
                    checkpoint.agent_id,
                    checkpoint.name,
                    config_text,
                    state_text,
                    checkpoint.created_at,
                ),
            )
            checkpoint_id = str(cur.lastrowid)

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

        async with self._cursor(
            f"retrieve checkpoint {checkpoint_id}", cursor_cls=aiomysql.DictCursor
        ) as cur:
            await cur.execute(
                f"SELECT * FROM `{TABLE_NAME}` WHERE `id` = %s LIMIT 1",
                (key,),
            )
            row = await cur.fetchone()

        if row is None:
            return None
        return row_to_stored_checkpoint(row)

    async def list_checkpoints(self) -> list[CheckpointListItem]:
        """List checkpoints."""
        async with self._cursor("list checkpoints", cursor_cls=aiomysql.DictCursor) as cur:
            await cur.execute(
                f"""
                SELECT `id`, `agentId`, `name`, `createdAt`
                FROM `{TABLE_NAME}`
                ORDER BY `createdAt` DESC, `id` DESC
                """
            )
            rows = await cur.fetchall()

        return [row_to_list_item(row) for row in rows]

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        pool.close()
        await pool.wait_closed()
        logger.debug("provider_closed", backend=self.backend)

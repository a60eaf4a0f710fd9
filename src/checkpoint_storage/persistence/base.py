"""Base interface for checkpoint persistence."""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Optional

from checkpoint_storage.models import CheckpointListItem, NamedCheckpoint, StoredCheckpoint
from checkpoint_storage.serialization import decode_payload, encode_payload

TABLE_NAME = "AgentState"


class CheckpointProvider(ABC):
    """Abstract base class for checkpoint storage backends.

    Every operation is a single statement against the backend, so callers may
    abandon an awaiting call (e.g. on timeout) without leaving partial state.
    """

    backend: str

    @abstractmethod
    async def ensure_schema(self) -> None:
        """Create the checkpoint table if it does not exist.

        Safe to call repeatedly and concurrently. An existing table is left
        untouched.

        Raises:
            ConnectivityError: If the backend is unreachable.
            SchemaError: If the table cannot be created.
        """
        pass

    @abstractmethod
    async def store_checkpoint(self, checkpoint: NamedCheckpoint) -> str:
        """Insert a checkpoint.

        Args:
            checkpoint: Checkpoint to store

        Returns:
            Backend-assigned identifier, rendered as a string

        Raises:
            SerializationError: If state or config cannot be encoded.
                Nothing is written in that case.
            ConnectivityError: If the backend is unreachable.
        """
        pass

    @abstractmethod
    async def retrieve_checkpoint(self, checkpoint_id: str) -> Optional[StoredCheckpoint]:
        """Get a checkpoint by identifier.

        Args:
            checkpoint_id: Identifier returned by :meth:`store_checkpoint`

        Returns:
            Checkpoint if found, None otherwise (including malformed ids)

        Raises:
            DeserializationError: If the stored payload is corrupt.
            ConnectivityError: If the backend is unreachable.
        """
        pass

    @abstractmethod
    async def list_checkpoints(self) -> list[CheckpointListItem]:
        """List checkpoint summaries, newest ``created_at`` first.

        Returns:
            Summaries without state or config; empty if none are stored
        """
        pass

    async def close(self) -> None:
        """Release connections held by the provider."""
        pass

    async def start(self) -> None:
        """Prepare the provider for use."""
        await self.ensure_schema()

    async def __aenter__(self) -> "CheckpointProvider":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()


def encode_checkpoint(checkpoint: NamedCheckpoint) -> tuple[str, str]:
    """Encode ``(config, state)`` for insertion."""
    config_text = encode_payload(checkpoint.config, "config")
    state_text = encode_payload(checkpoint.state, "state")
    return config_text, state_text


def row_to_stored_checkpoint(row: Any) -> StoredCheckpoint:
    """Build a :class:`StoredCheckpoint` from a full ``AgentState`` row.

    ``row`` is any mapping keyed by column name.
    """
    checkpoint_id = str(row["id"])
    return StoredCheckpoint(
        id=checkpoint_id,
        agent_id=row["agentId"],
        name=row["name"],
        config=decode_payload(row["config"], "config", checkpoint_id),
        state=decode_payload(row["state"], "state", checkpoint_id),
        created_at=int(row["createdAt"]),
    )


def row_to_list_item(row: Any) -> CheckpointListItem:
    """Build a :class:`CheckpointListItem` from a projected row."""
    return CheckpointListItem(
        id=str(row["id"]),
        agent_id=row["agentId"],
        name=row["name"],
        created_at=int(row["createdAt"]),
    )

"""Checkpoint records exchanged with storage providers."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# createdAt is stored in a signed 64-bit column on every backend.
MIN_CREATED_AT = -(2**63)
MAX_CREATED_AT = 2**63 - 1


class _CheckpointModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NamedCheckpoint(_CheckpointModel):
    """A checkpoint to be stored; the backend assigns its identifier."""

    agent_id: str = Field(..., description="Identifier of the owning agent")
    name: str = Field(..., description="Caller-supplied checkpoint label")
    config: Optional[Any] = Field(
        default=None, description="Agent configuration snapshot"
    )
    state: Any = Field(..., description="Agent state snapshot")
    created_at: int = Field(
        ...,
        ge=MIN_CREATED_AT,
        le=MAX_CREATED_AT,
        description="Creation time in milliseconds since the epoch",
    )


class StoredCheckpoint(NamedCheckpoint):
    """A checkpoint read back from storage."""

    id: str = Field(..., description="Backend-assigned checkpoint identifier")


class CheckpointListItem(_CheckpointModel):
    """Lightweight checkpoint summary used for listings."""

    id: str = Field(..., description="Backend-assigned checkpoint identifier")
    agent_id: str = Field(..., description="Identifier of the owning agent")
    name: str = Field(..., description="Caller-supplied checkpoint label")
    created_at: int = Field(
        ...,
        ge=MIN_CREATED_AT,
        le=MAX_CREATED_AT,
        description="Creation time in milliseconds since the epoch",
    )

"""Tests for the host-side checkpoint service."""

from pathlib import Path

import pytest

from checkpoint_storage.config import CheckpointConfig
from checkpoint_storage.exceptions import ConfigurationError
from checkpoint_storage.models import NamedCheckpoint
from checkpoint_storage.persistence import SQLiteCheckpointProvider
from checkpoint_storage.service import CheckpointService, install


@pytest.mark.asyncio
async def test_install_starts_provider(tmp_path: Path) -> None:
    """Test installing from config creates the table and wires the service."""
    service = CheckpointService()
    config = CheckpointConfig.model_validate(
        {"provider": {"type": "sqlite", "databasePath": str(tmp_path / "state.db")}}
    )

    provider = await install(service, config)

    assert isinstance(provider, SQLiteCheckpointProvider)
    assert service.provider is provider
    assert await service.list_checkpoints() == []


@pytest.mark.asyncio
async def test_install_without_config() -> None:
    service = CheckpointService()

    assert await install(service, None) is None
    with pytest.raises(ConfigurationError):
        service.provider


@pytest.mark.asyncio
async def test_service_delegates_to_provider(sqlite_provider: SQLiteCheckpointProvider) -> None:
    service = CheckpointService(sqlite_provider)

    checkpoint_id = await service.store_checkpoint(
        NamedCheckpoint(agent_id="a1", name="s1", state={"count": 1}, created_at=1000)
    )
    loaded = await service.retrieve_checkpoint(checkpoint_id)
    items = await service.list_checkpoints()

    assert loaded is not None
    assert loaded.state == {"count": 1}
    assert [item.id for item in items] == [checkpoint_id]

    await service.close()


@pytest.mark.asyncio
async def test_unconfigured_service_raises() -> None:
    service = CheckpointService()

    with pytest.raises(ConfigurationError):
        await service.list_checkpoints()


@pytest.mark.asyncio
async def test_set_checkpoint_provider_replaces(tmp_path: Path) -> None:
    first = SQLiteCheckpointProvider(tmp_path / "one.db")
    second = SQLiteCheckpointProvider(tmp_path / "two.db")
    service = CheckpointService(first)

    service.set_checkpoint_provider(second)

    assert service.provider is second

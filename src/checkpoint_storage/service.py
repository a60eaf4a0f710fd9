"""Host-side checkpoint service that delegates to a configured provider."""

from typing import Optional

from checkpoint_storage.config import CheckpointConfig
from checkpoint_storage.exceptions import ConfigurationError
from checkpoint_storage.factory import create_storage
from checkpoint_storage.logging_config import get_logger
from checkpoint_storage.models import CheckpointListItem, NamedCheckpoint, StoredCheckpoint
from checkpoint_storage.persistence.base import CheckpointProvider

logger = get_logger(__name__)


class CheckpointService:
    """Holds the active checkpoint provider for a host application."""

    def __init__(self, provider: Optional[CheckpointProvider] = None) -> None:
        self._provider = provider

    @property
    def provider(self) -> CheckpointProvider:
        if self._provider is None:
            raise ConfigurationError("No checkpoint provider has been configured")
        return self._provider

    def set_checkpoint_provider(self, provider: CheckpointProvider) -> None:
        """Install ``provider``, replacing any previous one.

        The previous provider is not closed; its owner remains responsible
        for it.
        """
        self._provider = provider
        logger.info("checkpoint_provider_set", backend=provider.backend)

    async def store_checkpoint(self, checkpoint: NamedCheckpoint) -> str:
        return await self.provider.store_checkpoint(checkpoint)

    async def retrieve_checkpoint(self, checkpoint_id: str) -> Optional[StoredCheckpoint]:
        return await self.provider.retrieve_checkpoint(checkpoint_id)

    async def list_checkpoints(self) -> list[CheckpointListItem]:
        return await self.provider.list_checkpoints()

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()


async def install(
    service: CheckpointService, config: Optional[CheckpointConfig]
) -> Optional[CheckpointProvider]:
    """Build and start the provider named by a host's ``checkpoint`` block.

    Args:
        service: Service to install the provider on.
        config: The host's checkpoint configuration, if any.

    Returns:
        The installed provider, or None when no checkpoint block is configured.
    """
    if config is None:
        logger.debug("checkpoint_storage_not_configured")
        return None

    provider = create_storage(config.provider)
    await provider.start()
    service.set_checkpoint_provider(provider)
    return provider

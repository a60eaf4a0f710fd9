"""Construction of checkpoint providers from configuration."""

from typing import Any, Callable, Mapping, Union

from checkpoint_storage.config import StorageProviderConfig, parse_provider_config
from checkpoint_storage.logging_config import get_logger
from checkpoint_storage.persistence import (
    CheckpointProvider,
    MySQLCheckpointProvider,
    PostgresCheckpointProvider,
    SQLiteCheckpointProvider,
)

logger = get_logger(__name__)

_FACTORIES: Mapping[str, Callable[[Any], CheckpointProvider]] = {
    "sqlite": SQLiteCheckpointProvider.from_config,
    "mysql": MySQLCheckpointProvider.from_config,
    "postgres": PostgresCheckpointProvider.from_config,
}


def create_storage(
    config: Union[StorageProviderConfig, Mapping[str, Any]],
) -> CheckpointProvider:
    """Create the checkpoint provider described by ``config``.

    Args:
        config: A validated provider configuration, or a raw mapping with a
            ``type`` discriminator.

    Returns:
        An unstarted provider; call ``start()`` (or use ``async with``) before
        the first operation.

    Raises:
        ConfigurationError: If a raw mapping is not a valid configuration.
    """
    if isinstance(config, Mapping):
        config = parse_provider_config(config)

    provider = _FACTORIES[config.type](config)
    logger.info("checkpoint_provider_created", backend=config.type)
    return provider

"""Checkpoint storage - relational persistence for agent state checkpoints."""

__version__ = "0.1.0"

from checkpoint_storage.config import (
    CheckpointConfig,
    MySQLStorageConfig,
    PostgresStorageConfig,
    Settings,
    SQLiteStorageConfig,
    StorageProviderConfig,
    get_settings,
    load_settings,
    parse_provider_config,
)
from checkpoint_storage.exceptions import (
    CheckpointStorageError,
    ConfigurationError,
    ConnectivityError,
    DeserializationError,
    SchemaError,
    SerializationError,
    StorageError,
)
from checkpoint_storage.factory import create_storage
from checkpoint_storage.models import CheckpointListItem, NamedCheckpoint, StoredCheckpoint
from checkpoint_storage.persistence import (
    CheckpointProvider,
    MySQLCheckpointProvider,
    PostgresCheckpointProvider,
    SQLiteCheckpointProvider,
)
from checkpoint_storage.service import CheckpointService, install

__all__ = [
    "__version__",
    "CheckpointConfig",
    "MySQLStorageConfig",
    "PostgresStorageConfig",
    "Settings",
    "SQLiteStorageConfig",
    "StorageProviderConfig",
    "get_settings",
    "load_settings",
    "parse_provider_config",
    "CheckpointStorageError",
    "ConfigurationError",
    "ConnectivityError",
    "DeserializationError",
    "SchemaError",
    "SerializationError",
    "StorageError",
    "create_storage",
    "CheckpointListItem",
    "NamedCheckpoint",
    "StoredCheckpoint",
    "CheckpointProvider",
    "MySQLCheckpointProvider",
    "PostgresCheckpointProvider",
    "SQLiteCheckpointProvider",
    "CheckpointService",
    "install",
]

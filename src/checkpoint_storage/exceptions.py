"""Custom exceptions for checkpoint storage."""


class CheckpointStorageError(Exception):
    """Base exception for all checkpoint storage errors."""

    pass


class ConfigurationError(CheckpointStorageError):
    """Raised when there's a configuration error."""

    pass


class StorageError(CheckpointStorageError):
    """Raised when there's an error with the storage backend."""

    pass


class ConnectivityError(StorageError):
    """Raised when the backend is unreachable or rejects the credentials."""

    pass


class SchemaError(StorageError):
    """Raised when the checkpoint table cannot be created."""

    pass


class SerializationError(StorageError):
    """Raised when a checkpoint payload cannot be encoded as JSON."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        super().__init__(f"Cannot encode checkpoint {field} as JSON: {reason}")


class DeserializationError(StorageError):
    """Raised when stored checkpoint text is not valid JSON."""

    def __init__(self, field: str, checkpoint_id: str, reason: str) -> None:
        self.field = field
        self.checkpoint_id = checkpoint_id
        super().__init__(
            f"Stored {field} of checkpoint {checkpoint_id} is not valid JSON: {reason}"
        )

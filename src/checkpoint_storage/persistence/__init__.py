"""Persistence layer for agent checkpoints."""

from checkpoint_storage.persistence.base import TABLE_NAME, CheckpointProvider
from checkpoint_storage.persistence.mysql import MySQLCheckpointProvider
from checkpoint_storage.persistence.postgres import PostgresCheckpointProvider
from checkpoint_storage.persistence.sqlite import SQLiteCheckpointProvider

__all__ = [
    "TABLE_NAME",
    "CheckpointProvider",
    "MySQLCheckpointProvider",
    "PostgresCheckpointProvider",
    "SQLiteCheckpointProvider",
]

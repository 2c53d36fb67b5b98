"""Storage backends handed to pipeline nodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from nodeflow.storage.base import StorageAdapter
from nodeflow.storage.filesystem import FileStorage
from nodeflow.storage.memory import MemoryStorage

if TYPE_CHECKING:
    from nodeflow.config import StorageConfig


def create_storage(config: StorageConfig) -> StorageAdapter:
    """Create the storage backend selected by configuration.

    Args:
        config: Storage configuration.

    Returns:
        A MemoryStorage or FileStorage instance.
    """
    if config.backend == "file":
        return FileStorage(config.get_path())
    return MemoryStorage()


__all__ = [
    "FileStorage",
    "MemoryStorage",
    "StorageAdapter",
    "create_storage",
]

"""Protocol definitions for the storage layer."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StorageAdapter(Protocol):
    """Protocol for key-value storage handed to nodes.

    The executor passes the handle through untouched; only nodes read or
    write it. Implementations can be in-memory, file-based, database-backed.
    """

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a value.

        Args:
            key: Storage key.
            default: Value returned when the key is missing.

        Returns:
            Stored value or ``default``.
        """
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a value under a key, replacing any previous value."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        ...

    async def keys(self) -> list[str]:
        """List stored keys in sorted order."""
        ...

"""In-memory storage backend."""

from __future__ import annotations

import copy
from typing import Any


class MemoryStorage:
    """Dict-backed storage for tests and one-off CLI runs.

    Values are deep-copied on the way in and out, so nodes cannot mutate
    stored data through a shared reference.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self._data)

    def snapshot(self) -> dict[str, Any]:
        """Get a copy of everything stored."""
        return copy.deepcopy(self._data)

    def __len__(self) -> int:
        return len(self._data)

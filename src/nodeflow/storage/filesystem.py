"""Filesystem-based storage backend."""

from __future__ import annotations

import asyncio
import json
import re
import uuid
from pathlib import Path
from typing import Any

import structlog

from nodeflow.exceptions import StorageError

logger = structlog.get_logger()

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_\-][A-Za-z0-9_.\-]*$")


class FileStorage:
    """JSON file storage.

    Stores each key as ``<root>/<key>.json``. Values must be JSON
    serializable. Keys are restricted to safe file names, so a key can
    never address a path outside the root directory. File I/O runs in a
    worker thread via ``asyncio.to_thread`` so nodes awaiting storage do not
    block the event loop.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the store.

        Args:
            root: Directory holding the JSON files. Created on first write.
        """
        self.root = root
        self._log = logger.bind(component="FileStorage", root=str(root))

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            msg = f"Invalid storage key: {key!r}"
            raise StorageError(msg, key=key)
        return self.root / f"{key}.json"

    async def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        try:
            return await asyncio.to_thread(self._read, path, default)
        except (json.JSONDecodeError, OSError) as e:
            self._log.warning("Failed to read stored value", key=key, error=str(e))
            msg = f"Failed to read key '{key}': {e}"
            raise StorageError(msg, key=key, path=path) from e

    async def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            payload = json.dumps(value, indent=2, sort_keys=True)
        except (TypeError, ValueError) as e:
            msg = f"Value for key '{key}' is not JSON serializable: {e}"
            raise StorageError(msg, key=key, path=path) from e

        try:
            await asyncio.to_thread(self._write, path, payload)
        except OSError as e:
            msg = f"Failed to write key '{key}': {e}"
            raise StorageError(msg, key=key, path=path) from e
        self._log.debug("Stored value", key=key)

    async def delete(self, key: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._list_keys)

    @staticmethod
    def _read(path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        return json.loads(path.read_text())

    def _write(self, path: Path, payload: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        # Unique temp name so concurrent writers never share a file
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_text(payload)
            tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)

    def _list_keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))

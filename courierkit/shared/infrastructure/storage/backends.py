"""Durable key-value backends for the credential store.

The backend is chosen once, when the store is built, by probing what the
current environment supports.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol

from courierkit.shared.core.configuration import StorageConfig

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Async string key-value storage."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage, used when nothing durable is available."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """JSON file backed storage.

    Blocking file I/O runs in the default executor so callers on the event
    loop never block on disk.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {self.path}")

    def _read_for_update(self) -> Optional[Dict[str, str]]:
        """Current contents, or None when the file is corrupt and must be rewritten."""
        try:
            return self._read_all()
        except ValueError as e:
            logger.warning(f"Discarding unreadable credentials file {self.path}: {e}")
            return None

    def _set(self, key: str, value: str) -> None:
        data = self._read_for_update() or {}
        data[key] = value
        self._write_all(data)

    def _remove(self, key: str) -> None:
        data = self._read_for_update()
        if data is None:
            self._write_all({})
        elif key in data:
            del data[key]
            self._write_all(data)

    async def get_item(self, key: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self._read_all)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set_item(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._set, key, value)

    async def remove_item(self, key: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._remove, key)


def _file_storage_available(path: Path) -> bool:
    """Check whether the token file's directory exists (or can be created) and is writable."""
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return os.access(directory, os.W_OK)


def create_storage(config: StorageConfig) -> KeyValueStorage:
    """Select the durable backend for this environment.

    Args:
        config: Storage section of the client configuration

    Returns:
        A FileStorage when the configured location is writable, otherwise a
        MemoryStorage (``backend="auto"``), or exactly the requested backend
    """
    if config.backend == "memory":
        return MemoryStorage()

    path = Path(config.path).expanduser()
    if config.backend == "file":
        return FileStorage(path)

    if _file_storage_available(path):
        logger.info(f"Token storage: file backend at {path}")
        return FileStorage(path)

    logger.warning(f"Token storage: {path.parent} is not writable, credentials will not survive a restart")
    return MemoryStorage()

"""Key-value storage adapters for registry persistence.

The registry persists one JSON-serializable record under a fixed key.
Two backends are provided:

- InMemoryKeyValueStore: process-local, for tests and ephemeral sessions
- JsonFileKeyValueStore: one JSON file per key under ~/.element-mcp/storage/

Both raise PersistenceError on failure; callers decide whether to
absorb it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A storage read, write or delete failed.

    Attributes:
        key: The storage key involved
        operation: "get", "set" or "remove"
    """

    def __init__(self, key: str, operation: str, cause: Optional[BaseException] = None) -> None:
        self.key = key
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage {operation} failed for key '{key}'{detail}")


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for durable key-value storage.

    Values must be JSON-serializable. A missing key reads as None.
    """

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store that round-trips values through JSON.

    Values are stored serialized so callers never share mutable state
    with the store, matching how a real storage backend behaves.
    """

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self.write_count = 0

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(key, "set", e) from e
        self.write_count += 1

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileKeyValueStore:
    """Store each key as a JSON file.

    Writes go to a uniquely named temporary file that is atomically
    renamed over the target. Writes and deletes for one key are
    serialized in call order, so the last call wins. File I/O runs in a
    worker thread so the event loop is not blocked.

    Example:
        store = JsonFileKeyValueStore()
        await store.set("web_llm_elements", {"elements": [], "counter": 1})
    """

    def __init__(self, storage_dir: Optional[Union[str, Path]] = None) -> None:
        """
        Args:
            storage_dir: Custom storage directory. Defaults to ~/.element-mcp/storage/
        """
        if storage_dir:
            self.storage_dir = Path(storage_dir).expanduser()
        else:
            self.storage_dir = Path.home() / ".element-mcp" / "storage"
        self._locks: Dict[str, asyncio.Lock] = {}

    def _sanitize_filename(self, name: str) -> str:
        unsafe_chars = ['/', '\\', ':', '*', '?', '"', '<', '>', '|']
        result = name
        for char in unsafe_chars:
            result = result.replace(char, '_')
        return result

    def path_for(self, key: str) -> Path:
        return self.storage_dir / f"{self._sanitize_filename(key)}.json"

    def _read(self, key: str) -> Optional[Any]:
        file_path = self.path_for(key)
        if not file_path.exists():
            return None
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _write(self, key: str, payload: str) -> None:
        file_path = self.path_for(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f"{file_path.stem}.", suffix=".json.tmp", dir=file_path.parent
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(temp_name, file_path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def _delete(self, key: str) -> None:
        file_path = self.path_for(key)
        if file_path.exists():
            file_path.unlink()

    async def get(self, key: str) -> Optional[Any]:
        try:
            return await asyncio.to_thread(self._read, key)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(key, "get", e) from e

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, indent=2)
            async with self._lock_for(key):
                await asyncio.to_thread(self._write, key, payload)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(key, "set", e) from e

    async def remove(self, key: str) -> None:
        try:
            async with self._lock_for(key):
                await asyncio.to_thread(self._delete, key)
        except OSError as e:
            raise PersistenceError(key, "remove", e) from e

"""In-memory adapter, used for tests and scratch space."""

from __future__ import annotations

import threading
import time
from typing import Dict, Tuple

from storage_engine.adapters.base import StorageAdapter, StorageResult
from storage_engine.config.definition import BackendDefinition

__all__ = ["MemoryAdapter"]


class MemoryAdapter(StorageAdapter):
    """Keeps objects in a process-local dict; each adapter has its own store."""

    def __init__(self, definition: BackendDefinition) -> None:
        super().__init__(definition)
        self._objects: Dict[str, Tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    @property
    def scheme(self) -> str:
        return "memory"

    def _get(self, path: str) -> Tuple[bytes, float]:
        with self._lock:
            try:
                return self._objects[path]
            except KeyError:
                raise self._not_found(path) from None

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._objects

    def read_bytes(self, path: str) -> bytes:
        return self._get(path)[0]

    def write_bytes(self, path: str, data: bytes) -> StorageResult:
        with self._lock:
            self._objects[path] = (bytes(data), time.time())
        return StorageResult(success=True, path=path, bytes_written=len(data))

    def delete(self, path: str) -> None:
        with self._lock:
            if self._objects.pop(path, None) is None:
                raise self._not_found(path)

    def size(self, path: str) -> int:
        return len(self._get(path)[0])

    def last_modified(self, path: str) -> float:
        return self._get(path)[1]

    def close(self) -> None:
        with self._lock:
            self._objects.clear()

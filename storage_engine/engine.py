"""Storage engine facade: identifier in, adapter operation out.

Example:
    >>> engine = StorageEngine.from_config({
    ...     "scratch": {"kind": "memory", "buckets": {"tmp": {"directory": "tmp/"}}},
    ... })
    >>> engine.write("tmp:report.txt", "hello")
    'tmp:report.txt'
    >>> engine.read_text("scratch:tmp/report.txt")
    'hello'
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, BinaryIO, Dict, Iterable, Iterator, List, Optional, Union

from storage_engine.adapters import AdapterFactory
from storage_engine.adapters.base import StorageAdapter
from storage_engine.config.registry import BackendRegistry
from storage_engine.errors import ObjectNotFound, StorageEngineError
from storage_engine.resolver import ResolvedHandle, UriResolver

logger = logging.getLogger(__name__)

__all__ = ["StorageEngine"]

Content = Union[bytes, bytearray, str, BinaryIO]


def _to_bytes(content: Content, encoding: str = "utf-8") -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if isinstance(content, str):
        return content.encode(encoding)
    if hasattr(content, "read"):
        data = content.read()
        if isinstance(data, str):
            return data.encode(encoding)
        return bytes(data)
    raise TypeError(
        f"content must be bytes, str or a binary file object, got {type(content).__name__}"
    )


class StorageEngine:
    """Operate on objects addressed as ``<server>:<path>``.

    One adapter is created per configured server on first use and reused
    by the server's buckets. The registry is never modified in place;
    :meth:`reload` swaps in a new one.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        adapter_factory: Optional[AdapterFactory] = None,
    ) -> None:
        self._resolver = UriResolver(registry)
        self._factory = adapter_factory or AdapterFactory()
        self._adapters: Dict[str, StorageAdapter] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls, config: Mapping, adapter_factory: Optional[AdapterFactory] = None
    ) -> "StorageEngine":
        return cls(BackendRegistry.from_config(config), adapter_factory)

    @property
    def registry(self) -> BackendRegistry:
        return self._resolver.registry

    @property
    def resolver(self) -> UriResolver:
        return self._resolver

    def server_names(self) -> List[str]:
        return self.registry.servers()

    def resolve(self, identifier: str) -> ResolvedHandle:
        return self._resolver.resolve(identifier)

    def adapter(self, server: str) -> StorageAdapter:
        """Return the adapter for a configured server, creating it if needed."""
        with self._lock:
            adapter = self._adapters.get(server)
            if adapter is None:
                adapter = self._factory.build(self.registry.lookup(server))
                self._adapters[server] = adapter
            return adapter

    def _locate(self, identifier: str):
        handle = self.resolve(identifier)
        return self.adapter(handle.server), handle.normalized_path

    @staticmethod
    def _require(adapter: StorageAdapter, path: str) -> None:
        if not adapter.exists(path):
            raise ObjectNotFound(path, backend=adapter.name)

    # -------------------------------------------------------------------------
    # Object operations
    # -------------------------------------------------------------------------

    def exists(self, identifier: str) -> bool:
        adapter, path = self._locate(identifier)
        return adapter.exists(path)

    def read(self, identifier: str) -> bytes:
        adapter, path = self._locate(identifier)
        return adapter.read_bytes(path)

    def read_text(self, identifier: str, encoding: str = "utf-8") -> str:
        return self.read(identifier).decode(encoding)

    def open(self, identifier: str) -> BinaryIO:
        """Open an object for binary reading; the caller closes the stream."""
        adapter, path = self._locate(identifier)
        return adapter.open_read(path)

    def write(self, identifier: str, content: Content, encoding: str = "utf-8") -> str:
        """Create or replace an object and return its identifier.

        Raises:
            StorageOperationError: The adapter could not write the object
        """
        adapter, path = self._locate(identifier)
        data = _to_bytes(content, encoding)
        adapter.write_bytes(path, data).raise_for_error(adapter.name)
        logger.debug("Wrote %d bytes to %s", len(data), identifier)
        return identifier

    def size(self, identifier: str) -> int:
        adapter, path = self._locate(identifier)
        return adapter.size(path)

    def last_modified(self, identifier: str) -> float:
        adapter, path = self._locate(identifier)
        return adapter.last_modified(path)

    def delete(self, identifier: str) -> None:
        adapter, path = self._locate(identifier)
        adapter.delete(path)
        logger.debug("Deleted %s", identifier)

    def copy(self, source: str, destination: str) -> str:
        """Copy an object, across servers if needed; returns *destination*."""
        src_adapter, src_path = self._locate(source)
        dst_adapter, dst_path = self._locate(destination)

        if src_adapter is dst_adapter and src_path == dst_path:
            # Same object, possibly reached through a bucket
            self._require(src_adapter, src_path)
            return destination

        if src_adapter is dst_adapter:
            result = src_adapter.copy(src_path, dst_path)
        else:
            result = dst_adapter.write_bytes(dst_path, src_adapter.read_bytes(src_path))
        result.raise_for_error(dst_adapter.name)

        logger.debug("Copied %s to %s", source, destination)
        return destination

    def move(self, source: str, destination: str) -> str:
        """Move an object, across servers if needed; returns *destination*."""
        src_adapter, src_path = self._locate(source)
        dst_adapter, dst_path = self._locate(destination)

        if src_adapter is dst_adapter and src_path == dst_path:
            self._require(src_adapter, src_path)
            return destination

        if src_adapter is dst_adapter:
            src_adapter.move(src_path, dst_path).raise_for_error(dst_adapter.name)
        else:
            data = src_adapter.read_bytes(src_path)
            dst_adapter.write_bytes(dst_path, data).raise_for_error(dst_adapter.name)
            src_adapter.delete(src_path)

        logger.debug("Moved %s to %s", source, destination)
        return destination

    # -------------------------------------------------------------------------
    # URLs
    # -------------------------------------------------------------------------

    def url(self, identifier: str) -> str:
        """Return a public URL for an object.

        Local servers join their ``host`` option with the path; S3 servers
        return a presigned URL.

        Raises:
            UrlNotAvailable: The server cannot expose objects through URLs
        """
        adapter, path = self._locate(identifier)
        return adapter.url(path)

    def urls(
        self, identifiers: Iterable[str], raise_errors: bool = True
    ) -> Iterator[Optional[str]]:
        """Lazily build a URL per identifier.

        With ``raise_errors=False`` a failing identifier yields None and the
        remaining identifiers are still processed.
        """
        for identifier in identifiers:
            try:
                url: Optional[str] = self.url(identifier)
            except StorageEngineError as e:
                if raise_errors:
                    raise
                logger.warning("Cannot build URL for %s: %s", identifier, e)
                url = None
            yield url

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reload(self, registry: BackendRegistry) -> None:
        """Swap in a new registry and drop every cached adapter."""
        with self._lock:
            adapters = list(self._adapters.values())
            self._adapters = {}
            self._resolver = UriResolver(registry)
        for adapter in adapters:
            adapter.close()
        logger.info("Reloaded storage registry with %d backends", len(registry))

    def close(self) -> None:
        with self._lock:
            adapters = list(self._adapters.values())
            self._adapters = {}
        for adapter in adapters:
            adapter.close()

    def __enter__(self) -> "StorageEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"StorageEngine(servers={self.server_names()!r})"

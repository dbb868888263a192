"""Abstract base class for storage adapters.

Adapters perform I/O against one configured server. They receive paths that
the resolver has already validated and normalized, relative to the server
root; adapters only add their own root (directory, key prefix, remote home).
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional

from storage_engine.config.definition import BackendDefinition
from storage_engine.errors import ObjectNotFound, StorageOperationError, UrlNotAvailable

logger = logging.getLogger(__name__)

__all__ = ["StorageAdapter", "StorageResult"]


@dataclass
class StorageResult:
    """Result of a write-style operation."""

    success: bool
    path: str
    bytes_written: int = 0
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "path": self.path,
            "bytes_written": self.bytes_written,
            "error": self.error,
            "metadata": self.metadata,
        }

    def raise_for_error(self, backend: Optional[str] = None) -> "StorageResult":
        """Raise :class:`StorageOperationError` if the operation failed."""
        if not self.success:
            raise StorageOperationError(
                f"Failed to write {self.path}: {self.error}",
                backend=backend,
                path=self.path,
            )
        return self


class StorageAdapter(ABC):
    """Abstract base class for storage adapters.

    Subclasses implement the primitive operations; ``copy``, ``move`` and
    ``open_read`` have portable defaults that may be overridden with
    server-side equivalents.
    """

    def __init__(self, definition: BackendDefinition) -> None:
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.server

    @property
    @abstractmethod
    def scheme(self) -> str:
        """Return the backend kind handled by this adapter."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if an object exists."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Read an object.

        Raises:
            ObjectNotFound: If the object does not exist
        """

    @abstractmethod
    def write_bytes(self, path: str, data: bytes) -> StorageResult:
        """Create or replace an object."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete an object.

        Raises:
            ObjectNotFound: If the object does not exist
        """

    @abstractmethod
    def size(self, path: str) -> int:
        """Return the object size in bytes."""

    @abstractmethod
    def last_modified(self, path: str) -> float:
        """Return the last modification time as a POSIX timestamp."""

    # Convenience methods (can be overridden for efficiency)

    def open_read(self, path: str) -> BinaryIO:
        """Return a readable binary stream for an object."""
        return io.BytesIO(self.read_bytes(path))

    def copy(self, src: str, dst: str) -> StorageResult:
        """Copy an object within this server."""
        return self.write_bytes(dst, self.read_bytes(src))

    def move(self, src: str, dst: str) -> StorageResult:
        """Move an object within this server."""
        if src == dst:
            return StorageResult(success=True, path=dst, bytes_written=self.size(src))
        result = self.copy(src, dst)
        if result.success:
            self.delete(src)
        return result

    def url(self, path: str) -> str:
        """Return a URL clients can fetch the object from.

        Raises:
            UrlNotAvailable: The backend kind or its configuration cannot
                expose objects over HTTP
        """
        raise UrlNotAvailable(f"{self.scheme} servers do not serve URLs", backend=self.name)

    def close(self) -> None:
        """Release connections held by the adapter."""

    def _not_found(self, path: str, cause: Optional[BaseException] = None) -> ObjectNotFound:
        return ObjectNotFound(path, backend=self.name, cause=cause)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(server={self.name!r})"

"""Local filesystem adapter."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

from storage_engine.adapters.base import StorageAdapter, StorageResult
from storage_engine.config.definition import BackendDefinition
from storage_engine.errors import StorageOperationError, UrlNotAvailable

logger = logging.getLogger(__name__)

__all__ = ["LocalAdapter"]


class LocalAdapter(StorageAdapter):
    """Stores objects as files under the server's ``root_dir``.

    Example:
        >>> definition = BackendDefinition.create("uploads", "local", {"root_dir": "/srv/up"})
        >>> adapter = LocalAdapter(definition)
        >>> adapter.write_bytes("avatars/42.png", b"...").success
        True
    """

    def __init__(self, definition: BackendDefinition) -> None:
        super().__init__(definition)
        self.root = Path(definition.get_option("root_dir")).expanduser().resolve()

    @property
    def scheme(self) -> str:
        return "local"

    def _resolve_path(self, path: str) -> Path:
        """Map a normalized path to a file under the root.

        Symlinks inside the root may point elsewhere, so the resolved
        target is checked as well.
        """
        resolved = (self.root / path).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise StorageOperationError(
                f"Path resolves outside of root directory: {path}",
                backend=self.name,
                path=path,
            )
        return resolved

    def _file(self, path: str) -> Path:
        resolved = self._resolve_path(path)
        if not resolved.is_file():
            raise self._not_found(path)
        return resolved

    def exists(self, path: str) -> bool:
        return self._resolve_path(path).is_file()

    def read_bytes(self, path: str) -> bytes:
        return self._file(path).read_bytes()

    def open_read(self, path: str) -> BinaryIO:
        return open(self._file(path), "rb")

    def write_bytes(self, path: str, data: bytes) -> StorageResult:
        resolved = self._resolve_path(path)

        try:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            resolved.write_bytes(data)
        except OSError as e:
            logger.error("Failed to write %s: %s", resolved, e)
            return StorageResult(success=False, path=path, error=str(e))

        return StorageResult(success=True, path=path, bytes_written=len(data))

    def delete(self, path: str) -> None:
        resolved = self._file(path)
        try:
            resolved.unlink()
        except OSError as e:
            raise StorageOperationError(
                f"Failed to delete {path}", backend=self.name, path=path, cause=e
            ) from e

    def size(self, path: str) -> int:
        return self._file(path).stat().st_size

    def last_modified(self, path: str) -> float:
        return self._file(path).stat().st_mtime

    def url(self, path: str) -> str:
        """Join the configured public ``host`` with the object path."""
        host = self.definition.get_option("host", None)
        if not host:
            raise UrlNotAvailable("'host' option is not set", backend=self.name)
        return f"{host.rstrip('/')}/{quote(path)}"

    def copy(self, src: str, dst: str) -> StorageResult:
        """Copy a file (uses shutil for efficiency)."""
        src_resolved = self._file(src)
        dst_resolved = self._resolve_path(dst)

        try:
            dst_resolved.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src_resolved, dst_resolved)
        except OSError as e:
            logger.error("Failed to copy %s to %s: %s", src_resolved, dst_resolved, e)
            return StorageResult(success=False, path=dst, error=str(e))

        return StorageResult(
            success=True, path=dst, bytes_written=dst_resolved.stat().st_size
        )

    def move(self, src: str, dst: str) -> StorageResult:
        src_resolved = self._file(src)
        dst_resolved = self._resolve_path(dst)

        try:
            dst_resolved.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src_resolved), str(dst_resolved))
        except OSError as e:
            logger.error("Failed to move %s to %s: %s", src_resolved, dst_resolved, e)
            return StorageResult(success=False, path=dst, error=str(e))

        return StorageResult(
            success=True, path=dst, bytes_written=dst_resolved.stat().st_size
        )

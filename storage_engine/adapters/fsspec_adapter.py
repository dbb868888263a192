"""FTP and SFTP adapters backed by fsspec filesystems.

fsspec ships both protocols; ``sftp`` needs paramiko at runtime
(``pip install storage-engine[sftp]``).
"""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Optional

import fsspec
from fsspec.spec import AbstractFileSystem

from storage_engine.adapters.base import StorageAdapter, StorageResult
from storage_engine.config.definition import BackendDefinition
from storage_engine.errors import StorageOperationError

logger = logging.getLogger(__name__)

__all__ = ["FsspecAdapter", "ftp_storage_options", "sftp_storage_options"]


def ftp_storage_options(definition: BackendDefinition) -> Dict[str, Any]:
    """Map ftp server options onto ``fsspec.implementations.ftp.FTPFileSystem``."""
    options: Dict[str, Any] = {"host": definition.get_option("host")}
    for name in ("port", "username", "password", "timeout", "tls"):
        if definition.has_option(name):
            options[name] = definition.get_option(name)
    if "port" in options:
        options["port"] = int(options["port"])
    return options


def sftp_storage_options(definition: BackendDefinition) -> Dict[str, Any]:
    """Map sftp server options onto paramiko ``SSHClient.connect`` keywords."""
    options: Dict[str, Any] = {"host": definition.get_option("host")}
    for name in ("port", "username", "password", "timeout"):
        if definition.has_option(name):
            options[name] = definition.get_option(name)
    if definition.has_option("private_key"):
        options["key_filename"] = definition.get_option("private_key")
    if "port" in options:
        options["port"] = int(options["port"])
    return options


_STORAGE_OPTIONS = {
    "ftp": ftp_storage_options,
    "sftp": sftp_storage_options,
}


class FsspecAdapter(StorageAdapter):
    """Adapter for remote filesystems reachable through fsspec.

    Example:
        >>> definition = BackendDefinition.create(
        ...     "archive", "sftp", {"host": "files.internal", "root": "/data"}
        ... )
        >>> adapter = FsspecAdapter(definition)
        >>> adapter.exists("2024/q1.pdf")
        True
    """

    def __init__(
        self, definition: BackendDefinition, fs: Optional[AbstractFileSystem] = None
    ) -> None:
        super().__init__(definition)
        self.protocol = definition.kind.value
        if self.protocol not in _STORAGE_OPTIONS:
            raise ValueError(f"FsspecAdapter does not handle '{self.protocol}' servers")
        self.root = definition.get_option("root", "").rstrip("/")
        self._fs = fs

    @property
    def scheme(self) -> str:
        return self.protocol

    @property
    def fs(self) -> AbstractFileSystem:
        """Lazy-load the filesystem."""
        if self._fs is None:
            storage_options = _STORAGE_OPTIONS[self.protocol](self.definition)
            try:
                self._fs = fsspec.filesystem(self.protocol, **storage_options)
            except ImportError as e:
                raise ImportError(
                    f"{self.protocol} storage needs an extra dependency: {e}. "
                    f"Install with: pip install storage-engine[{self.protocol}]"
                ) from e
            except OSError as e:
                raise StorageOperationError(
                    f"Could not connect to {self.protocol} server "
                    f"{storage_options['host']}",
                    backend=self.name,
                    cause=e,
                ) from e

            if self.protocol == "ftp" and self.definition.has_option("passive"):
                self._fs.ftp.set_pasv(bool(self.definition.get_option("passive")))

            logger.debug(
                "Connected %s filesystem for server '%s'", self.protocol, self.name
            )
        return self._fs

    def _full_path(self, path: str) -> str:
        if not self.root:
            return path
        return f"{self.root}/{path}" if path else self.root

    def _error(self, action: str, path: str, exc: Exception) -> Exception:
        if isinstance(exc, FileNotFoundError):
            return self._not_found(path, exc)
        logger.error("%s %s failed for %s: %s", self.protocol, action, self._full_path(path), exc)
        return StorageOperationError(
            f"Failed to {action} {path}", backend=self.name, path=path, cause=exc
        )

    def _info(self, path: str) -> Dict[str, Any]:
        try:
            info = self.fs.info(self._full_path(path))
        except OSError as e:
            raise self._error("stat", path, e) from e
        if info.get("type") != "file":
            raise self._not_found(path)
        return info

    def exists(self, path: str) -> bool:
        try:
            return self.fs.isfile(self._full_path(path))
        except OSError as e:
            raise self._error("stat", path, e) from e

    def read_bytes(self, path: str) -> bytes:
        try:
            return self.fs.cat_file(self._full_path(path))
        except OSError as e:
            raise self._error("read", path, e) from e

    def open_read(self, path: str) -> BinaryIO:
        try:
            return self.fs.open(self._full_path(path), "rb")
        except OSError as e:
            raise self._error("open", path, e) from e

    def write_bytes(self, path: str, data: bytes) -> StorageResult:
        full_path = self._full_path(path)
        try:
            parent = posixpath.dirname(full_path)
            if parent:
                self.fs.makedirs(parent, exist_ok=True)
            self.fs.pipe_file(full_path, data)
        except OSError as e:
            logger.error("Failed to write %s://%s: %s", self.protocol, full_path, e)
            return StorageResult(success=False, path=path, error=str(e))

        return StorageResult(success=True, path=path, bytes_written=len(data))

    def delete(self, path: str) -> None:
        self._info(path)
        try:
            self.fs.rm_file(self._full_path(path))
        except OSError as e:
            raise self._error("delete", path, e) from e

    def size(self, path: str) -> int:
        return int(self._info(path).get("size") or 0)

    def last_modified(self, path: str) -> float:
        info = self._info(path)
        for key in ("mtime", "modify", "modified", "LastModified"):
            value = info.get(key)
            if value is None:
                continue
            if isinstance(value, datetime):
                return value.timestamp()
            if isinstance(value, str) and key == "modify":
                # MLSD facts are UTC, YYYYMMDDHHMMSS
                parsed = datetime.strptime(value[:14], "%Y%m%d%H%M%S")
                return parsed.replace(tzinfo=timezone.utc).timestamp()
            return float(value)
        raise StorageOperationError(
            f"Server does not report modification times for {path}",
            backend=self.name,
            path=path,
        )

    def move(self, src: str, dst: str) -> StorageResult:
        self._info(src)
        if src == dst:
            return StorageResult(success=True, path=dst, bytes_written=self.size(src))
        dst_full = self._full_path(dst)
        try:
            parent = posixpath.dirname(dst_full)
            if parent:
                self.fs.makedirs(parent, exist_ok=True)
            self.fs.mv(self._full_path(src), dst_full)
        except OSError as e:
            logger.error("Failed to move %s to %s: %s", src, dst, e)
            return StorageResult(success=False, path=dst, error=str(e))

        return StorageResult(success=True, path=dst, bytes_written=self.size(dst))

    def close(self) -> None:
        self._fs = None

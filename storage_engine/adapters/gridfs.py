"""MongoDB GridFS adapter.

Requires pymongo (``pip install storage-engine[gridfs]``).
"""

from __future__ import annotations

import logging
from datetime import timezone
from typing import Any, BinaryIO, Dict, Optional

from storage_engine.adapters.base import StorageAdapter, StorageResult
from storage_engine.config.definition import BackendDefinition
from storage_engine.errors import StorageOperationError

logger = logging.getLogger(__name__)

__all__ = ["GridFSAdapter"]

DEFAULT_BUCKET = "fs"


class GridFSAdapter(StorageAdapter):
    """Stores objects as GridFS files named by their path.

    GridFS files are immutable, so a write uploads a new revision and then
    removes the older ones.
    """

    def __init__(self, definition: BackendDefinition, bucket: Optional[Any] = None) -> None:
        super().__init__(definition)
        self.bucket_name = definition.get_option("bucket", DEFAULT_BUCKET)
        self._client = None
        self._bucket = bucket

    @property
    def scheme(self) -> str:
        return "gridfs"

    @property
    def bucket(self):
        """Lazy-load the GridFS bucket."""
        if self._bucket is None:
            try:
                import gridfs
                from pymongo import MongoClient
            except ImportError as e:
                raise ImportError(
                    "pymongo is required for GridFS storage. "
                    "Install with: pip install storage-engine[gridfs]"
                ) from e

            self._client = MongoClient(self.definition.get_option("connection"))
            database = self._client[self.definition.get_option("database")]
            self._bucket = gridfs.GridFSBucket(database, bucket_name=self.bucket_name)
            logger.debug(
                "Opened GridFS bucket '%s' for server '%s'", self.bucket_name, self.name
            )
        return self._bucket

    def _latest(self, path: str) -> Dict[str, Any]:
        try:
            for grid_out in self.bucket.find({"filename": path}).sort("uploadDate", -1).limit(1):
                return {
                    "_id": grid_out._id,
                    "length": grid_out.length,
                    "upload_date": grid_out.upload_date,
                }
        except Exception as e:
            raise StorageOperationError(
                f"Failed to stat {path}", backend=self.name, path=path, cause=e
            ) from e
        raise self._not_found(path)

    def _revisions(self, path: str) -> list:
        return [grid_out._id for grid_out in self.bucket.find({"filename": path})]

    def exists(self, path: str) -> bool:
        try:
            return bool(self._revisions(path))
        except Exception as e:
            raise StorageOperationError(
                f"Failed to stat {path}", backend=self.name, path=path, cause=e
            ) from e

    def open_read(self, path: str) -> BinaryIO:
        file_id = self._latest(path)["_id"]
        try:
            return self.bucket.open_download_stream(file_id)
        except Exception as e:
            raise StorageOperationError(
                f"Failed to read {path}", backend=self.name, path=path, cause=e
            ) from e

    def read_bytes(self, path: str) -> bytes:
        stream = self.open_read(path)
        try:
            return stream.read()
        finally:
            stream.close()

    def write_bytes(self, path: str, data: bytes) -> StorageResult:
        try:
            previous = self._revisions(path)
            file_id = self.bucket.upload_from_stream(path, data)
            for old_id in previous:
                self.bucket.delete(old_id)
        except Exception as e:
            logger.error("Failed to write %s to GridFS: %s", path, e)
            return StorageResult(success=False, path=path, error=str(e))

        return StorageResult(
            success=True,
            path=path,
            bytes_written=len(data),
            metadata={"file_id": str(file_id)},
        )

    def delete(self, path: str) -> None:
        revisions = self._revisions(path)
        if not revisions:
            raise self._not_found(path)
        try:
            for file_id in revisions:
                self.bucket.delete(file_id)
        except Exception as e:
            raise StorageOperationError(
                f"Failed to delete {path}", backend=self.name, path=path, cause=e
            ) from e

    def size(self, path: str) -> int:
        return int(self._latest(path)["length"])

    def last_modified(self, path: str) -> float:
        uploaded = self._latest(path)["upload_date"]
        if uploaded.tzinfo is None:
            # pymongo returns naive UTC datetimes unless tz_aware is set
            uploaded = uploaded.replace(tzinfo=timezone.utc)
        return uploaded.timestamp()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._bucket = None

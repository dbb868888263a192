"""S3-compatible storage adapter using boto3."""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Any, BinaryIO, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from storage_engine.adapters.base import StorageAdapter, StorageResult
from storage_engine.config.definition import BackendDefinition
from storage_engine.errors import ConfigurationError, StorageOperationError

logger = logging.getLogger(__name__)

__all__ = ["S3Adapter", "url_expires_seconds"]

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

DEFAULT_URL_EXPIRES = 24 * 60 * 60

_DURATION = re.compile(r"^\+?\s*(\d+)\s*(second|minute|hour|day|week)s?$", re.IGNORECASE)
_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400, "week": 604800}


def url_expires_seconds(value: Any, *, backend: Optional[str] = None) -> int:
    """Convert the ``url_expires`` option to a presigned URL lifetime in seconds.

    Accepts a number of seconds, a :class:`~datetime.timedelta` or a relative
    duration such as ``"+24hours"`` or ``"30 minutes"``.

    Raises:
        ConfigurationError: Unparseable or non-positive value
    """
    seconds: Optional[int] = None
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds())
    elif isinstance(value, int) and not isinstance(value, bool):
        seconds = value
    elif isinstance(value, str):
        text = value.strip()
        match = _DURATION.match(text)
        if text.isdigit():
            seconds = int(text)
        elif match:
            seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]

    if seconds is None or seconds <= 0:
        raise ConfigurationError(
            f"Invalid url_expires value {value!r}",
            backend=backend,
            suggestion="Use a number of seconds or a duration like '+24hours'",
        )
    return seconds


def _is_not_found(exc: ClientError) -> bool:
    code = exc.response.get("Error", {}).get("Code")
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


class S3Adapter(StorageAdapter):
    """S3 adapter; supports AWS S3, MinIO and any S3-compatible store.

    Options:
        bucket: Bucket name (required)
        client: Extra keyword arguments for ``boto3.client`` (credentials etc.)
        region: Region name
        endpoint_url: Custom endpoint (MinIO, LocalStack)
        path_prefix: Key prefix applied to every object
        url_expires: Lifetime of presigned URLs (default 24 hours)
    """

    def __init__(self, definition: BackendDefinition, client: Optional[Any] = None) -> None:
        super().__init__(definition)
        self.bucket = definition.get_option("bucket")
        self.prefix = definition.get_option("path_prefix", "").strip("/")
        self.url_expires = url_expires_seconds(
            definition.get_option("url_expires", DEFAULT_URL_EXPIRES), backend=self.name
        )
        self._client = client

    @property
    def scheme(self) -> str:
        return "s3"

    @property
    def client(self):
        """Lazily create the boto3 client."""
        if self._client is None:
            client_kwargs: Dict[str, Any] = dict(self.definition.get_option("client", {}))
            region = self.definition.get_option("region", None)
            if region:
                client_kwargs.setdefault("region_name", region)
            endpoint_url = self.definition.get_option("endpoint_url", None)
            if endpoint_url:
                client_kwargs.setdefault("endpoint_url", endpoint_url)

            self._client = boto3.client("s3", **client_kwargs)
            logger.debug(
                "Created S3 client for bucket '%s' with endpoint: %s",
                self.bucket,
                endpoint_url or "default",
            )
        return self._client

    def _build_key(self, path: str) -> str:
        """Build full S3 key from path and prefix."""
        if self.prefix:
            return f"{self.prefix}/{path}" if path else self.prefix
        return path

    def _error(self, action: str, path: str, exc: Exception) -> Exception:
        if isinstance(exc, ClientError) and _is_not_found(exc):
            return self._not_found(path, exc)
        logger.error("S3 %s failed for s3://%s/%s: %s", action, self.bucket, self._build_key(path), exc)
        return StorageOperationError(
            f"Failed to {action} {path}", backend=self.name, path=path, cause=exc
        )

    def _head(self, path: str) -> Dict[str, Any]:
        try:
            return self.client.head_object(Bucket=self.bucket, Key=self._build_key(path))
        except (BotoCoreError, ClientError) as e:
            raise self._error("stat", path, e) from e

    def exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._build_key(path))
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise self._error("stat", path, e) from e
        except BotoCoreError as e:
            raise self._error("stat", path, e) from e
        return True

    def _get_body(self, path: str):
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._build_key(path))
        except (BotoCoreError, ClientError) as e:
            raise self._error("read", path, e) from e
        return response["Body"]

    def read_bytes(self, path: str) -> bytes:
        return self._get_body(path).read()

    def open_read(self, path: str) -> BinaryIO:
        return self._get_body(path)

    def write_bytes(self, path: str, data: bytes) -> StorageResult:
        key = self._build_key(path)
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to write s3://%s/%s: %s", self.bucket, key, e)
            return StorageResult(success=False, path=path, error=str(e))

        logger.debug("Wrote %d bytes to s3://%s/%s", len(data), self.bucket, key)
        return StorageResult(
            success=True,
            path=path,
            bytes_written=len(data),
            metadata={"bucket": self.bucket, "key": key},
        )

    def delete(self, path: str) -> None:
        # delete_object succeeds for missing keys, so existence is checked first
        self._head(path)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._build_key(path))
        except (BotoCoreError, ClientError) as e:
            raise self._error("delete", path, e) from e

    def size(self, path: str) -> int:
        return int(self._head(path)["ContentLength"])

    def last_modified(self, path: str) -> float:
        return self._head(path)["LastModified"].timestamp()

    def copy(self, src: str, dst: str) -> StorageResult:
        """Server-side copy within the bucket."""
        dst_key = self._build_key(dst)
        try:
            self.client.copy_object(
                Bucket=self.bucket,
                Key=dst_key,
                CopySource={"Bucket": self.bucket, "Key": self._build_key(src)},
            )
        except ClientError as e:
            if _is_not_found(e):
                raise self._not_found(src, e) from e
            logger.error("Failed to copy %s to %s: %s", src, dst, e)
            return StorageResult(success=False, path=dst, error=str(e))
        except BotoCoreError as e:
            logger.error("Failed to copy %s to %s: %s", src, dst, e)
            return StorageResult(success=False, path=dst, error=str(e))

        return StorageResult(
            success=True,
            path=dst,
            bytes_written=self.size(dst),
            metadata={"bucket": self.bucket, "key": dst_key},
        )

    def url(self, path: str) -> str:
        """Return a presigned GET URL valid for ``url_expires`` seconds."""
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": self._build_key(path)},
                ExpiresIn=self.url_expires,
            )
        except (BotoCoreError, ClientError) as e:
            raise self._error("presign", path, e) from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

"""Backend kinds supported by the storage engine."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from storage_engine.errors import UnknownBackendKind

__all__ = ["BackendKind"]


class BackendKind(Enum):
    """Closed set of backend families.

    Adding a kind means adding a member here, an entry in
    ``storage_engine.config.schema.SCHEMAS`` and one adapter registration.
    """

    LOCAL = "local"
    S3 = "s3"
    FTP = "ftp"
    SFTP = "sftp"
    GRIDFS = "gridfs"
    MEMORY = "memory"

    @classmethod
    def choices(cls) -> List[str]:
        """Return the canonical config values."""
        return [member.value for member in cls]

    @classmethod
    def from_value(cls, value: Any, *, backend: str = "") -> "BackendKind":
        """Coerce a config value (enum member or string) into a kind.

        Raises:
            UnknownBackendKind: If the value names no known kind
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            kind = _ALIASES.get(value.strip().lower())
            if kind is not None:
                return kind
        raise UnknownBackendKind(value, backend=backend or None)


# Legacy adapter names map onto the canonical kinds
_ALIASES: Dict[str, BackendKind] = {member.value: member for member in BackendKind}
_ALIASES.update(
    {
        "awss3": BackendKind.S3,
        "aws_s3": BackendKind.S3,
        "asyncawss3": BackendKind.S3,
        "fs": BackendKind.LOCAL,
        "filesystem": BackendKind.LOCAL,
        "mongo": BackendKind.GRIDFS,
        "inmemory": BackendKind.MEMORY,
    }
)

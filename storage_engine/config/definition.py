"""Validated descriptor of one named backend (server or bucket)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional

from storage_engine.config.kinds import BackendKind
from storage_engine.config.schema import schema_for, validate_options
from storage_engine.errors import (
    ConfigurationError,
    InvalidBackendName,
    OptionNotFound,
    TypeMismatch,
    UnknownBackendKind,
)
from storage_engine.uri import SEPARATOR

__all__ = ["BackendDefinition", "ENTRY_KEYS", "check_entry_keys"]

_MISSING = object()

# Keys accepted for the default prefix in a config entry, in priority order
_PREFIX_KEYS = ("prefix", "default_prefix", "directory")

# Every key a server entry may carry
ENTRY_KEYS = frozenset(("kind", "options", "buckets") + _PREFIX_KEYS)


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidBackendName(name, "must be a non-empty string")
    if SEPARATOR in name:
        raise InvalidBackendName(name, f"must not contain {SEPARATOR!r}")
    return name


def check_entry_keys(name: Any, entry: Mapping, allowed: frozenset) -> None:
    """Reject keys a configuration entry does not define.

    Raises:
        ConfigurationError: The first unexpected key, in insertion order
    """
    for key in entry:
        if key not in allowed:
            raise ConfigurationError(
                f"Unknown key '{key}' in configuration for backend '{name}'",
                backend=str(name),
                suggestion=f"Allowed keys: {', '.join(sorted(allowed))}",
                details={"key": str(key)},
            )


@dataclass(frozen=True)
class BackendDefinition:
    """A fully validated backend definition.

    Instances only exist in a valid state: build them with :meth:`create`
    or :meth:`from_config`, which run the option schema for the kind.

    Attributes:
        name: Unique backend name, the first segment of every identifier
        kind: Backend family
        options: Read-only validated options
        default_prefix: Directory/prefix prepended to every resolved path
        server: Name of the configured server this definition belongs to
    """

    name: str
    kind: BackendKind
    options: Mapping = field(default_factory=lambda: MappingProxyType({}))
    default_prefix: Optional[str] = None
    server: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        kind: Any,
        options: Optional[Mapping] = None,
        default_prefix: Optional[str] = None,
        *,
        server: Optional[str] = None,
    ) -> "BackendDefinition":
        """Validate and build a definition.

        Raises:
            InvalidBackendName: Empty name or name containing the separator
            UnknownBackendKind: Kind has no registered schema
            MissingRequiredOption, UnknownOption, TypeMismatch: Schema violations
        """
        name = _check_name(name)
        backend_kind = BackendKind.from_value(kind, backend=name)

        schema = schema_for(backend_kind)
        if schema is None:
            raise UnknownBackendKind(backend_kind.value, backend=name)

        if options is None:
            options = {}
        if not isinstance(options, Mapping):
            raise TypeMismatch("options", "mapping", type(options).__name__, backend=name)

        validated = validate_options(schema, options, backend=name)

        if default_prefix is not None and not isinstance(default_prefix, str):
            raise TypeMismatch(
                "prefix", "string", type(default_prefix).__name__, backend=name
            )

        return cls(
            name=name,
            kind=backend_kind,
            options=MappingProxyType(validated),
            default_prefix=default_prefix or None,
            server=server or name,
        )

    @classmethod
    def from_config(cls, name: str, entry: Mapping) -> "BackendDefinition":
        """Build a definition from one configuration entry.

        The entry looks like ``{"kind": "s3", "options": {...}, "prefix": "..."}``.
        """
        if not isinstance(entry, Mapping):
            raise ConfigurationError(
                f"Configuration for backend '{name}' must be a mapping",
                backend=str(name),
            )
        check_entry_keys(name, entry, ENTRY_KEYS)
        if "kind" not in entry:
            raise ConfigurationError(
                f"Backend '{name}' does not declare a kind",
                backend=str(name),
                suggestion="Add 'kind: local|s3|ftp|sftp|gridfs|memory'",
            )

        prefix = None
        for key in _PREFIX_KEYS:
            if entry.get(key) is not None:
                prefix = entry[key]
                break

        return cls.create(name, entry["kind"], entry.get("options"), prefix)

    def with_bucket(self, name: str, directory: Optional[str] = None) -> "BackendDefinition":
        """Derive a bucket definition sharing this server's kind and options."""
        return BackendDefinition.create(
            name,
            self.kind,
            dict(self.options),
            directory,
            server=self.server,
        )

    @property
    def is_bucket(self) -> bool:
        return self.server != self.name

    def has_option(self, name: str) -> bool:
        return name in self.options

    def get_option(self, name: str, default: Any = _MISSING) -> Any:
        """Return an option value.

        Raises:
            OptionNotFound: Option is not set and no default was given
        """
        if name in self.options:
            return self.options[name]
        if default is not _MISSING:
            return default
        raise OptionNotFound(name, self.name)

    def get_directory(self) -> Optional[str]:
        return self.default_prefix

    def __repr__(self) -> str:
        return (
            f"BackendDefinition(name={self.name!r}, kind={self.kind.value!r}, "
            f"prefix={self.default_prefix!r})"
        )

"""Registry of configured backend definitions.

The registry is built once at startup and frozen. Hot reload means building
a new registry and swapping the reference, never mutating a live one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, List, Optional

from storage_engine.config.definition import BackendDefinition, check_entry_keys
from storage_engine.errors import (
    ConfigurationError,
    DuplicateBackendName,
    RegistryFrozen,
    UnknownBackend,
)

logger = logging.getLogger(__name__)

__all__ = ["BackendRegistry", "servers_section"]

SERVERS_KEY = "servers"
BUCKETS_KEY = "buckets"
BUCKET_KEYS = frozenset(("directory", "prefix"))


def servers_section(config: Mapping) -> Mapping:
    """Return the ``{name: entry}`` mapping held by *config*.

    A top-level ``servers`` key is unwrapped unless it is itself a backend
    entry (it declares a ``kind``) sitting next to other backends.

    Raises:
        ConfigurationError: ``servers`` is not a mapping, or shares the top
            level with other keys
    """
    if SERVERS_KEY not in config:
        return config

    section = config[SERVERS_KEY]
    if isinstance(section, Mapping) and "kind" in section:
        return config

    if len(config) > 1:
        nested = isinstance(section, Mapping) and all(
            isinstance(entry, Mapping) for entry in section.values()
        )
        if not nested:
            return config
        extra = next(key for key in config if key != SERVERS_KEY)
        raise ConfigurationError(
            f"Unexpected top-level key '{extra}' next to '{SERVERS_KEY}'",
            suggestion=f"Move '{extra}' under '{SERVERS_KEY}'",
        )

    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{SERVERS_KEY}' must be a mapping")
    return section


class BackendRegistry:
    """Mapping of backend name to :class:`BackendDefinition`.

    Example:
        >>> registry = BackendRegistry.from_config({
        ...     "uploads": {"kind": "local", "options": {"root_dir": "/srv/uploads"}},
        ...     "scratch": {"kind": "memory"},
        ... })
        >>> registry.exists("uploads")
        True
        >>> registry.lookup("scratch").kind.value
        'memory'
    """

    def __init__(self, definitions: Optional[Iterable[BackendDefinition]] = None) -> None:
        self._definitions: Dict[str, BackendDefinition] = {}
        self._frozen = False
        for definition in definitions or ():
            self.register(definition)

    @classmethod
    def from_config(cls, config: Mapping) -> "BackendRegistry":
        """Build a frozen registry from already-parsed configuration.

        Accepts either ``{name: entry}`` or ``{"servers": {name: entry}}``.
        Every entry is registered eagerly; the first invalid entry aborts
        construction so a partial registry never escapes.

        Raises:
            ConfigurationError: Any invalid entry or duplicate name
        """
        if not isinstance(config, Mapping):
            raise ConfigurationError("Storage configuration must be a mapping")

        servers = servers_section(config)

        registry = cls()
        for name, entry in servers.items():
            definition = BackendDefinition.from_config(name, entry)
            registry.register(definition)

            buckets = entry.get(BUCKETS_KEY) or {}
            if not isinstance(buckets, Mapping):
                raise ConfigurationError(
                    f"'{BUCKETS_KEY}' of backend '{name}' must be a mapping",
                    backend=str(name),
                )
            for bucket_name, bucket_entry in buckets.items():
                directory = None
                if isinstance(bucket_entry, Mapping):
                    check_entry_keys(bucket_name, bucket_entry, BUCKET_KEYS)
                    directory = bucket_entry.get("directory", bucket_entry.get("prefix"))
                elif bucket_entry is not None:
                    directory = bucket_entry
                registry.register(definition.with_bucket(bucket_name, directory))

        registry.freeze()
        logger.debug("Built storage registry with %d backends", len(registry))
        return registry

    def register(self, definition: BackendDefinition) -> None:
        """Add a definition.

        Raises:
            DuplicateBackendName: A definition with the same name exists
            RegistryFrozen: The registry has been frozen
        """
        if self._frozen:
            raise RegistryFrozen(definition.name)
        if definition.name in self._definitions:
            raise DuplicateBackendName(definition.name)
        self._definitions[definition.name] = definition

    def freeze(self) -> "BackendRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> BackendDefinition:
        """Return the definition registered under *name*.

        Raises:
            UnknownBackend: No such backend
        """
        try:
            return self._definitions[name]
        except KeyError:
            raise UnknownBackend(name) from None

    def exists(self, name: str) -> bool:
        return name in self._definitions

    def names(self) -> List[str]:
        """Return registered names in registration order."""
        return list(self._definitions)

    def servers(self) -> List[str]:
        """Return names of configured servers, excluding derived buckets."""
        return [d.name for d in self._definitions.values() if not d.is_bucket]

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[BackendDefinition]:
        return iter(list(self._definitions.values()))

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"BackendRegistry(names={self.names()!r}, frozen={self._frozen})"

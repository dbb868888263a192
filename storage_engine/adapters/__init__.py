"""Storage adapters and the factory that builds them per backend kind.

Usage:
    from storage_engine.adapters import AdapterFactory

    factory = AdapterFactory()
    adapter = factory.build(definition)
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Union

from storage_engine.adapters.base import StorageAdapter, StorageResult
from storage_engine.config.definition import BackendDefinition
from storage_engine.config.kinds import BackendKind
from storage_engine.errors import UnknownBackendKind, UnsupportedBackendKind

logger = logging.getLogger(__name__)

__all__ = [
    "ADAPTER_BUILDERS",
    "AdapterBuilder",
    "AdapterFactory",
    "StorageAdapter",
    "StorageResult",
    "list_adapters",
    "register_adapter",
]

AdapterBuilder = Callable[[BackendDefinition], StorageAdapter]

ADAPTER_BUILDERS: Dict[BackendKind, AdapterBuilder] = {}


def register_adapter(kind: Union[BackendKind, str]) -> Callable[[AdapterBuilder], AdapterBuilder]:
    """Decorator to register an adapter builder for a backend kind.

    Usage:
        @register_adapter("memory")
        def _memory_builder(definition: BackendDefinition) -> StorageAdapter:
            return MemoryAdapter(definition)
    """
    backend_kind = BackendKind.from_value(kind)

    def decorator(builder: AdapterBuilder) -> AdapterBuilder:
        ADAPTER_BUILDERS[backend_kind] = builder
        return builder

    return decorator


def list_adapters() -> List[str]:
    """Return all backend kinds that have a registered adapter."""
    return sorted(kind.value for kind in ADAPTER_BUILDERS)


class AdapterFactory:
    """Maps a backend kind to the builder of its adapter.

    Without arguments the factory uses the global ``ADAPTER_BUILDERS`` table;
    hosts that restrict kinds (and tests) pass their own mapping.
    """

    def __init__(self, builders: Optional[Mapping[BackendKind, AdapterBuilder]] = None) -> None:
        self._builders = ADAPTER_BUILDERS if builders is None else dict(builders)

    def kinds(self) -> List[BackendKind]:
        return sorted(self._builders, key=lambda kind: kind.value)

    def for_kind(self, kind: Union[BackendKind, str]) -> AdapterBuilder:
        """Get the builder for *kind*.

        Raises:
            UnsupportedBackendKind: No builder is registered for the kind
        """
        try:
            backend_kind = BackendKind.from_value(kind)
        except UnknownBackendKind as exc:
            raise UnsupportedBackendKind(kind) from exc

        builder = self._builders.get(backend_kind)
        if builder is None:
            raise UnsupportedBackendKind(backend_kind.value)
        return builder

    def build(self, definition: BackendDefinition) -> StorageAdapter:
        adapter = self.for_kind(definition.kind)(definition)
        logger.debug("Built %r for backend '%s'", adapter, definition.name)
        return adapter


# =============================================================================
# Built-in Adapter Builders
# =============================================================================


@register_adapter(BackendKind.LOCAL)
def _local_builder(definition: BackendDefinition) -> StorageAdapter:
    from storage_engine.adapters.local import LocalAdapter
    return LocalAdapter(definition)


@register_adapter(BackendKind.MEMORY)
def _memory_builder(definition: BackendDefinition) -> StorageAdapter:
    from storage_engine.adapters.memory import MemoryAdapter
    return MemoryAdapter(definition)


@register_adapter(BackendKind.S3)
def _s3_builder(definition: BackendDefinition) -> StorageAdapter:
    from storage_engine.adapters.s3 import S3Adapter
    return S3Adapter(definition)


@register_adapter(BackendKind.FTP)
@register_adapter(BackendKind.SFTP)
def _fsspec_builder(definition: BackendDefinition) -> StorageAdapter:
    from storage_engine.adapters.fsspec_adapter import FsspecAdapter
    return FsspecAdapter(definition)


@register_adapter(BackendKind.GRIDFS)
def _gridfs_builder(definition: BackendDefinition) -> StorageAdapter:
    from storage_engine.adapters.gridfs import GridFSAdapter
    return GridFSAdapter(definition)

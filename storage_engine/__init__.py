"""Storage engine: named storage servers addressed as ``<server>:<path>``.

Usage:
    from storage_engine import StorageEngine

    engine = StorageEngine.from_config({
        "uploads": {"kind": "local", "options": {"root_dir": "/srv/uploads"}},
    })
    engine.write("uploads:avatars/42.png", data)
"""

from storage_engine.adapters import AdapterFactory, StorageAdapter, StorageResult, register_adapter
from storage_engine.config import BackendDefinition, BackendKind, BackendRegistry
from storage_engine.engine import StorageEngine
from storage_engine.errors import (
    BadIdentifier,
    ConfigurationError,
    InvalidPath,
    ObjectNotFound,
    PathTraversal,
    ResolutionError,
    StorageEngineError,
    StorageOperationError,
    UnknownBackend,
    UrlNotAvailable,
    http_status,
)
from storage_engine.path_validator import validate_path
from storage_engine.resolver import ResolvedHandle, ResolveResult, UriResolver
from storage_engine.uri import SEPARATOR, ParsedUri, build_uri, parse_uri

__version__ = "0.1.0"

__all__ = [
    "AdapterFactory",
    "BackendDefinition",
    "BackendKind",
    "BackendRegistry",
    "BadIdentifier",
    "ConfigurationError",
    "InvalidPath",
    "ObjectNotFound",
    "ParsedUri",
    "PathTraversal",
    "ResolutionError",
    "ResolvedHandle",
    "ResolveResult",
    "SEPARATOR",
    "StorageAdapter",
    "StorageEngine",
    "StorageEngineError",
    "StorageOperationError",
    "StorageResult",
    "UnknownBackend",
    "UriResolver",
    "UrlNotAvailable",
    "build_uri",
    "http_status",
    "parse_uri",
    "register_adapter",
    "validate_path",
]

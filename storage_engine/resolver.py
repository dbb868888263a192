"""Identifier resolution: from ``<server>:<path>`` to a backend and a path.

Resolution is a pure, synchronous computation over a frozen registry. It is
safe to call from many threads at once and every failure is permanent for
its input, so nothing is retried or cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional

from storage_engine.config.definition import BackendDefinition
from storage_engine.config.kinds import BackendKind
from storage_engine.config.registry import BackendRegistry
from storage_engine.errors import (
    BadIdentifier,
    InvalidPath,
    MalformedIdentifier,
    PathTraversal,
    ResolutionError,
    UnknownBackend,
)
from storage_engine.path_validator import PATH_SEPARATOR, validate_path
from storage_engine.uri import parse_uri

logger = logging.getLogger(__name__)

__all__ = ["ResolvedHandle", "ResolveResult", "UriResolver"]


@dataclass(frozen=True)
class ResolvedHandle:
    """A backend definition paired with a normalized, prefixed path."""

    definition: BackendDefinition
    normalized_path: str

    @property
    def backend(self) -> str:
        return self.definition.name

    @property
    def server(self) -> str:
        return self.definition.server

    @property
    def kind(self) -> BackendKind:
        return self.definition.kind


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of :meth:`UriResolver.try_resolve`; exactly one of handle/error is set."""

    identifier: Any
    handle: Optional[ResolvedHandle] = None
    error: Optional[ResolutionError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "identifier": self.identifier,
            "success": self.success,
            "backend": self.handle.backend if self.handle else None,
            "path": self.handle.normalized_path if self.handle else None,
            "error": self.error.to_dict() if self.error else None,
        }


class UriResolver:
    """Resolve identifiers against a :class:`BackendRegistry`.

    Example:
        >>> registry = BackendRegistry.from_config({
        ...     "docs": {"kind": "memory", "prefix": "users/42/"},
        ... })
        >>> UriResolver(registry).resolve("docs:report.pdf").normalized_path
        'users/42/report.pdf'
    """

    def __init__(self, registry: BackendRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    def resolve(self, identifier: str) -> ResolvedHandle:
        """Resolve *identifier* into a :class:`ResolvedHandle`.

        Raises:
            BadIdentifier: The identifier could not be parsed
            UnknownBackend: The server part names no registered backend
            PathTraversal: The path, alone or with the prefix, escapes the root
            InvalidCharacter: The path contains a forbidden character
        """
        try:
            parsed = parse_uri(identifier)
        except MalformedIdentifier as exc:
            logger.debug("Rejected identifier %r: %s", identifier, exc.reason)
            raise BadIdentifier(
                exc.message,
                identifier=identifier if isinstance(identifier, str) else None,
            ) from exc

        try:
            definition = self._registry.lookup(parsed.server)
        except UnknownBackend as exc:
            logger.debug("Unknown backend in %r", identifier)
            raise UnknownBackend(parsed.server, identifier=identifier) from exc

        normalized = self._validate(identifier, parsed.path)

        prefix = definition.default_prefix
        if prefix:
            combined = f"{prefix.rstrip(PATH_SEPARATOR)}{PATH_SEPARATOR}{normalized}"
            normalized = self._validate(identifier, combined)

        return ResolvedHandle(definition=definition, normalized_path=normalized)

    def try_resolve(self, identifier: str) -> ResolveResult:
        """Resolve without raising; failures are returned in the result."""
        try:
            handle = self.resolve(identifier)
        except ResolutionError as exc:
            return ResolveResult(identifier=identifier, error=exc)
        return ResolveResult(identifier=identifier, handle=handle)

    def resolve_all(self, identifiers: Iterable[str]) -> Iterator[ResolvedHandle]:
        """Lazily resolve each identifier, raising on the first failure."""
        for identifier in identifiers:
            yield self.resolve(identifier)

    def _validate(self, identifier: str, path: str) -> str:
        try:
            return validate_path(path)
        except InvalidPath as exc:
            exc.identifier = identifier
            exc.details["identifier"] = identifier
            if isinstance(exc, PathTraversal):
                logger.warning("Path traversal attempt rejected: %r", identifier)
            else:
                logger.debug("Invalid path in %r: %s", identifier, exc.message)
            raise

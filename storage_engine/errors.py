"""Structured exception hierarchy for the storage engine.

Configuration errors are raised while the backend registry is built and are
fatal at startup. Resolution errors are raised per call and are always
recoverable by the caller. Operation errors come from the adapters.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "StorageEngineError",
    "ConfigurationError",
    "MissingRequiredOption",
    "UnknownOption",
    "TypeMismatch",
    "UnknownBackendKind",
    "DuplicateBackendName",
    "InvalidBackendName",
    "RegistryFrozen",
    "OptionNotFound",
    "MalformedIdentifier",
    "ResolutionError",
    "BadIdentifier",
    "UnknownBackend",
    "InvalidPath",
    "PathTraversal",
    "InvalidCharacter",
    "UnsupportedBackendKind",
    "StorageOperationError",
    "ObjectNotFound",
    "UrlNotAvailable",
    "http_status",
]


class StorageEngineError(Exception):
    """Base exception for all storage engine errors.

    Carries structured context so failures can be logged without parsing
    the message text.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]
        if suggestion:
            parts.append(f"Suggestion: {suggestion}")

        super().__init__("\n".join(parts))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
        }


# =============================================================================
# Configuration (startup) errors
# =============================================================================


class ConfigurationError(StorageEngineError):
    """Invalid storage configuration.

    Raised only while backend definitions and the registry are constructed.
    """

    def __init__(
        self,
        message: str,
        *,
        backend: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.backend = backend

        details = kwargs.pop("details", None) or {}
        if backend:
            details["backend"] = backend

        super().__init__(message, details=details, **kwargs)


class MissingRequiredOption(ConfigurationError):
    """A required option for the backend kind is absent."""

    def __init__(self, name: str, *, backend: Optional[str] = None) -> None:
        self.option = name
        super().__init__(
            f"Missing required option '{name}'",
            backend=backend,
            details={"option": name},
        )


class UnknownOption(ConfigurationError):
    """An option is outside the declared schema for the backend kind."""

    def __init__(self, name: str, *, backend: Optional[str] = None) -> None:
        self.option = name
        super().__init__(
            f"Unknown option '{name}'",
            backend=backend,
            details={"option": name},
        )


class TypeMismatch(ConfigurationError):
    """An option value has the wrong runtime type."""

    def __init__(
        self,
        name: str,
        expected: str,
        actual: str,
        *,
        backend: Optional[str] = None,
    ) -> None:
        self.option = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Option '{name}' must be of type {expected}, got {actual}",
            backend=backend,
            details={"option": name, "expected": expected, "actual": actual},
        )


class UnknownBackendKind(ConfigurationError):
    """The configured kind has no registered option schema."""

    def __init__(self, kind: Any, *, backend: Optional[str] = None) -> None:
        self.kind = kind
        super().__init__(
            f"Unknown backend kind '{kind}'",
            backend=backend,
            details={"kind": str(kind)},
            suggestion="Use one of: local, s3, ftp, sftp, gridfs, memory",
        )


class DuplicateBackendName(ConfigurationError):
    """Two backend definitions share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Backend '{name}' is already registered", backend=name)


class InvalidBackendName(ConfigurationError):
    """Backend names must be non-empty and must not contain the URI separator."""

    def __init__(self, name: Any, reason: str) -> None:
        self.name = name
        super().__init__(
            f"Invalid backend name {name!r}: {reason}",
            details={"name": repr(name)},
        )


class RegistryFrozen(ConfigurationError):
    """The registry no longer accepts registrations."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Cannot register '{name}': registry is frozen",
            backend=name,
            suggestion="Build a new registry and swap it in instead of mutating a live one",
        )


class OptionNotFound(StorageEngineError, KeyError):
    """Requested option is not set on a backend definition."""

    def __init__(self, name: str, backend: str) -> None:
        self.option = name
        self.backend = backend
        super().__init__(
            f"Option '{name}' is not set for backend '{backend}'",
            details={"option": name, "backend": backend},
        )

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Identifier parsing and resolution errors
# =============================================================================


class MalformedIdentifier(StorageEngineError, ValueError):
    """Identifier does not have the ``<server>:<path>`` form."""

    def __init__(self, identifier: Any, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(
            f"Malformed identifier {identifier!r}: {reason}",
            details={"identifier": repr(identifier)},
        )


class ResolutionError(StorageEngineError):
    """Base class for per-call identifier resolution failures."""

    def __init__(
        self,
        message: str,
        *,
        identifier: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.identifier = identifier

        details = kwargs.pop("details", None) or {}
        if identifier is not None:
            details["identifier"] = identifier

        super().__init__(message, details=details, **kwargs)


class BadIdentifier(ResolutionError):
    """The identifier could not be parsed."""


class UnknownBackend(ResolutionError):
    """No backend with the requested name is registered."""

    def __init__(self, name: str, *, identifier: Optional[str] = None) -> None:
        self.name = name
        super().__init__(
            f"Backend '{name}' is not registered",
            identifier=identifier,
            details={"backend": name},
        )


class InvalidPath(ResolutionError):
    """The path component failed validation."""

    def __init__(self, message: str, *, path: str, **kwargs: Any) -> None:
        self.path = path

        details = kwargs.pop("details", None) or {}
        details["path"] = path

        super().__init__(message, details=details, **kwargs)


class PathTraversal(InvalidPath):
    """The path escapes the backend root."""

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(f"Path escapes backend root: {path!r}", path=path, **kwargs)


class InvalidCharacter(InvalidPath):
    """The path contains a forbidden character."""

    def __init__(self, path: str, character: str, position: int, **kwargs: Any) -> None:
        self.character = character
        self.position = position

        details = kwargs.pop("details", None) or {}
        details.update({"character": repr(character), "position": position})

        super().__init__(
            f"Forbidden character {character!r} at position {position}",
            path=path,
            details=details,
            **kwargs,
        )


# =============================================================================
# Adapter selection and operation errors
# =============================================================================


class UnsupportedBackendKind(StorageEngineError):
    """No adapter is registered for the backend kind."""

    def __init__(self, kind: Any) -> None:
        self.kind = kind
        super().__init__(
            f"No adapter registered for backend kind '{kind}'",
            details={"kind": str(kind)},
        )


class StorageOperationError(StorageEngineError):
    """An adapter failed to perform an operation."""

    def __init__(
        self,
        message: str,
        *,
        backend: Optional[str] = None,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.backend = backend
        self.path = path
        self.cause = cause

        details = kwargs.pop("details", None) or {}
        if backend:
            details["backend"] = backend
        if path is not None:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)


class ObjectNotFound(StorageOperationError, FileNotFoundError):
    """The addressed object does not exist on its backend."""

    def __init__(self, path: str, *, backend: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(
            f"Object not found: {path}",
            backend=backend,
            path=path,
            **kwargs,
        )

    def __str__(self) -> str:
        return self.message


class UrlNotAvailable(StorageOperationError):
    """The backend cannot expose an object through a URL."""

    def __init__(self, reason: str, *, backend: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(
            f"Cannot build a URL for server '{backend}': {reason}",
            backend=backend,
            **kwargs,
        )


def http_status(error: BaseException) -> int:
    """Map an error to the HTTP status a facade should answer with."""
    if isinstance(error, (BadIdentifier, InvalidPath, MalformedIdentifier)):
        return 400
    if isinstance(error, (UnknownBackend, ObjectNotFound)):
        return 404
    return 500

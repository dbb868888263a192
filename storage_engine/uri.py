"""Identifier parsing for ``<server>:<path>`` addresses.

Only the first separator is significant, so a path may itself contain
colons. Legacy ``server://path`` identifiers parse to a path starting with
``//``, which the path validator collapses away.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from storage_engine.errors import MalformedIdentifier

__all__ = ["SEPARATOR", "ParsedUri", "parse_uri", "build_uri"]

SEPARATOR = ":"


@dataclass(frozen=True)
class ParsedUri:
    """Decomposed identifier.

    Attributes:
        server: Backend name (never empty)
        path: Raw path, unvalidated; empty string means the backend root
    """

    server: str
    path: str

    def render(self) -> str:
        """Serialize back to identifier form (exact inverse of parse)."""
        return f"{self.server}{SEPARATOR}{self.path}"

    def __str__(self) -> str:
        return self.render()


def parse_uri(identifier: Any) -> ParsedUri:
    """Split *identifier* on the first separator.

    Examples:
        >>> parse_uri("uploads:avatars/42.png")
        ParsedUri(server='uploads', path='avatars/42.png')
        >>> parse_uri("notes:2024/12:30.txt").path
        '2024/12:30.txt'

    Raises:
        MalformedIdentifier: Separator missing, server part empty, or not a string
    """
    if not isinstance(identifier, str):
        raise MalformedIdentifier(identifier, "identifier must be a string")

    server, found, path = identifier.partition(SEPARATOR)
    if not found:
        raise MalformedIdentifier(identifier, f"missing {SEPARATOR!r} separator")
    if not server:
        raise MalformedIdentifier(identifier, "server name is empty")

    return ParsedUri(server=server, path=path)


def build_uri(server: str, path: str = "") -> str:
    """Compose an identifier from a server name and a path.

    Raises:
        MalformedIdentifier: Server is empty or contains the separator
    """
    if not server:
        raise MalformedIdentifier(server, "server name is empty")
    if SEPARATOR in server:
        raise MalformedIdentifier(server, f"server name contains {SEPARATOR!r}")
    return ParsedUri(server=server, path=path).render()

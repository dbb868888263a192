"""Validation and normalization of backend-relative paths.

Paths are always relative to the backend root. Normalization collapses
repeated separators, drops a leading separator and ``.`` segments, and
applies ``..`` against a depth counter that must never go negative.
"""

from __future__ import annotations

import unicodedata
from typing import List

from storage_engine.errors import InvalidCharacter, PathTraversal

__all__ = ["PATH_SEPARATOR", "ALLOWED_PUNCTUATION", "validate_path", "is_valid_path"]

PATH_SEPARATOR = "/"

ALLOWED_PUNCTUATION = frozenset(" ._-/+(),=*@~!&'[]:")


def _check_characters(path: str) -> None:
    for position, char in enumerate(path):
        if char == "\x00":
            raise InvalidCharacter(path, char, position)
        if unicodedata.category(char).startswith("C"):
            # Control, format, surrogate, private-use, unassigned
            raise InvalidCharacter(path, char, position)
        if char.isalnum() or char in ALLOWED_PUNCTUATION:
            continue
        raise InvalidCharacter(path, char, position)


def validate_path(path: str) -> str:
    """Validate and normalize *path*.

    Examples:
        >>> validate_path("/reports//2024/./q1.pdf")
        'reports/2024/q1.pdf'
        >>> validate_path("a/b/../c")
        'a/c'
        >>> validate_path("")
        ''

    Returns:
        Normalized path; the empty string addresses the backend root

    Raises:
        InvalidCharacter: Null byte, control character or character outside the allow-list
        PathTraversal: A ``..`` segment would climb above the backend root
    """
    if not isinstance(path, str):
        raise TypeError(f"path must be a string, got {type(path).__name__}")

    _check_characters(path)

    segments: List[str] = []
    for segment in path.split(PATH_SEPARATOR):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not segments:
                raise PathTraversal(path)
            segments.pop()
            continue
        segments.append(segment)

    return PATH_SEPARATOR.join(segments)


def is_valid_path(path: str) -> bool:
    try:
        validate_path(path)
    except (InvalidCharacter, PathTraversal):
        return False
    return True

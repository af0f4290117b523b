"""
Utility functions for file system operations and filename sanitization.

This module provides helper functions for:
- Replacing characters that are invalid in file names
- Truncating user-provided strings on code point boundaries
- Ensuring directory creation
- Splitting file extensions off stored object keys
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath, Path

# Characters rejected in file names on at least one common filesystem
INVALID_FILENAME_PATTERN = re.compile(r'[/\\:*?"<>|]')

ELLIPSIS = "…"


def sanitize_filename(name: str) -> str:
    """
    Replace characters that are invalid in file names with underscores.

    Example:
        >>> sanitize_filename('a/b:c?')
        'a_b_c_'
    """
    return INVALID_FILENAME_PATTERN.sub("_", name)


def truncate_runes(text: str, limit: int) -> str:
    """
    Truncate a string to at most ``limit`` code points.

    An ellipsis is appended when anything was cut, so the result may be
    ``limit + 1`` code points long.

    Example:
        >>> truncate_runes("abcdef", 3)
        'abc…'
    """
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def shorten_by_one_rune(text: str) -> str:
    """Drop the last code point of a string."""
    return text[:-1]


def utf8_length(text: str) -> int:
    return len(text.encode("utf-8"))


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def split_extension(filename: str) -> tuple[str, str]:
    """
    Split a file name or object key into stem and extension components.

    Example:
        >>> split_extension("comics/abc/0001.png")
        ('0001', '.png')
        >>> split_extension("comics/abc/raw")
        ('raw', '')
    """
    path = PurePosixPath(filename)
    return path.stem, path.suffix

"""
Exception types raised by the project interchange codec and merge engine.

Parsing and validation errors are raised before any database interaction,
so callers can treat them as "nothing was changed". Infrastructure errors
(sqlite3.Error, OSError) are never wrapped and propagate as-is.
"""

from __future__ import annotations

from typing import Optional


class ProjectCodecError(Exception):
    """Base class for all import/export failures owned by this package."""


class ProjectFormatError(ProjectCodecError):
    """The byte stream does not follow the expected project file grammar."""


class LabelPlusFormatError(ProjectFormatError):
    """
    A LabelPlus file failed header validation or line scanning.

    Attributes:
        line_number: 1-based line where the problem was detected
        expected: What the parser expected at that line, if applicable
        actual: What the line actually contained (None at end of file)
    """

    def __init__(
        self,
        message: str,
        line_number: int,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number
        self.expected = expected
        self.actual = actual


class ProjectValidationError(ProjectCodecError):
    """A decoded project violates a semantic constraint."""


class PoprakoValidationError(ProjectValidationError):
    """A Poprako JSON project is malformed or fails validation."""


class PageCountMismatchError(ProjectCodecError):
    """The imported file and the comic disagree on the number of pages."""

    def __init__(self, parsed_pages: int, existing_pages: int) -> None:
        super().__init__(
            f"page count mismatch: file has {parsed_pages} pages, "
            f"database has {existing_pages} pages"
        )
        self.parsed_pages = parsed_pages
        self.existing_pages = existing_pages


class UnsupportedProjectExtensionError(ProjectCodecError):
    def __init__(self, extension: str) -> None:
        super().__init__(f"unsupported project file extension: {extension or '<none>'}")
        self.extension = extension


class ComicNotFoundError(ProjectCodecError):
    def __init__(self, comic_id: str) -> None:
        super().__init__(f"comic not found: {comic_id}")
        self.comic_id = comic_id

"""
LabelPlus project file parser.

The LabelPlus text format starts with a fixed header, followed by page
markers (one per image) and unit blocks:

    1,0
    -
    框内
    框外
    -
    <free-form generator line>
    <blank line>

    >>>>>>>>[page_1.jpg]<<<<<<<<
    ----------------[1]----------------[100.5000,200.5000,1]
    <main text>

    #[翻校注释]：【翻译】<translator note>
    【校对】<proofreader note>

Page and unit boundaries are only ever the marker lines; blank lines carry
no meaning after the header.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import IO, Iterator, List, Optional, Tuple, Union

from .comments import split_comment
from .errors import LabelPlusFormatError, ProjectFormatError
from .parsed import ParsedPage, ParsedUnit, ProjectFormat

logger = logging.getLogger(__name__)

HEADER_LINES = ("1,0", "-", "框内", "框外", "-")

PAGE_MARKER_PATTERN = re.compile(r"^>>>>>>>>\[.+\]<<<<<<<<$")
UNIT_HEADER_PATTERN = re.compile(
    r"^----------------\[([0-9]+)\]----------------\[(-?[0-9.]+),(-?[0-9.]+),([12])\]$"
)
COMMENT_PATTERN = re.compile(r"^#\[翻校注释\]：(.*)$")

IN_BOX_GROUP = "1"

LabelPlusSource = Union[bytes, str, IO[bytes], IO[str]]


@dataclass
class UnitBuilder:
    """Accumulates the lines of one unit until the next marker line."""

    index: int
    x: float
    y: float
    is_in_box: bool
    main_lines: List[str] = field(default_factory=list)
    comment_lines: List[str] = field(default_factory=list)
    in_comment: bool = False

    def add_line(self, line: str) -> None:
        if self.in_comment:
            self.comment_lines.append(line)
        else:
            self.main_lines.append(line)

    def open_comment(self, first_line: str) -> None:
        self.in_comment = True
        self.comment_lines.append(first_line)

    def build(self) -> ParsedUnit:
        return apply_parsed_data(self)


@dataclass
class AwaitingPage:
    """Header consumed, no page marker seen yet."""


@dataclass
class InPage:
    page: ParsedPage
    unit: Optional[UnitBuilder] = None

    def flush_unit(self) -> None:
        if self.unit is not None:
            self.page.units.append(self.unit.build())
            self.unit = None


ScanState = Union[AwaitingPage, InPage]


def apply_parsed_data(builder: UnitBuilder) -> ParsedUnit:
    """Join a unit's buffers into its main text and split comment fields."""
    main_text = "\n".join(builder.main_lines) if builder.main_lines else None
    translator_comment, proofreader_comment = (None, None)
    if builder.comment_lines:
        translator_comment, proofreader_comment = split_comment("\n".join(builder.comment_lines))

    return ParsedUnit(
        index=builder.index,
        x=builder.x,
        y=builder.y,
        is_in_box=builder.is_in_box,
        main_text=main_text,
        translator_comment=translator_comment,
        proofreader_comment=proofreader_comment,
        source=ProjectFormat.LABELPLUS,
    )


def _read_text(source: LabelPlusSource) -> str:
    if hasattr(source, "read"):
        source = source.read()  # type: ignore[union-attr]
    if isinstance(source, bytes):
        try:
            return source.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ProjectFormatError(f"LabelPlus file is not valid UTF-8: {exc}") from exc
    return source.removeprefix("\ufeff")  # type: ignore[union-attr]


def _iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (line_number, line) pairs with line endings removed."""
    lines = text.split("\n")
    # A trailing newline terminates the last line instead of opening a new one
    if lines and lines[-1] == "":
        lines.pop()
    for number, line in enumerate(lines, start=1):
        yield number, line.removesuffix("\r")


def validate_header(lines: Iterator[Tuple[int, str]]) -> None:
    """
    Consume and validate the 7-line LabelPlus header.

    Raises:
        LabelPlusFormatError: On early end of file or any literal mismatch
    """
    for position, expected in enumerate(HEADER_LINES, start=1):
        number, line = next(lines, (position, None))
        if line is None:
            raise LabelPlusFormatError("unexpected end of file in header", number, expected, None)
        if line != expected:
            raise LabelPlusFormatError(
                f"invalid header: expected {expected!r}, got {line!r}", number, expected, line
            )

    generator_position = len(HEADER_LINES) + 1
    number, line = next(lines, (generator_position, None))
    if line is None:
        raise LabelPlusFormatError("unexpected end of file after header", number)

    number, line = next(lines, (generator_position + 1, None))
    if line is None:
        raise LabelPlusFormatError("unexpected end of file after header comment", number, "", None)
    if line != "":
        raise LabelPlusFormatError(
            f"expected empty line after header comment, got {line!r}", number, "", line
        )


def _parse_unit_header(number: int, match: re.Match) -> UnitBuilder:
    raw_index, raw_x, raw_y, group = match.groups()
    try:
        index = int(raw_index)
    except ValueError as exc:
        raise LabelPlusFormatError(f"failed to parse unit index {raw_index!r}", number, actual=raw_index) from exc
    try:
        x = float(raw_x)
    except ValueError as exc:
        raise LabelPlusFormatError(f"failed to parse X coordinate {raw_x!r}", number, actual=raw_x) from exc
    try:
        y = float(raw_y)
    except ValueError as exc:
        raise LabelPlusFormatError(f"failed to parse Y coordinate {raw_y!r}", number, actual=raw_y) from exc

    return UnitBuilder(index=index, x=x, y=y, is_in_box=group == IN_BOX_GROUP)


def parse_labelplus(source: LabelPlusSource) -> List[ParsedPage]:
    """
    Parse a LabelPlus file into an ordered list of pages.

    Args:
        source: Raw file bytes, decoded text, or a readable stream of either

    Returns:
        Pages in file order, each holding its units in file order

    Raises:
        LabelPlusFormatError: If the header is invalid or a unit header
            cannot be parsed
        ProjectFormatError: If the input is not valid UTF-8
    """
    lines = _iter_lines(_read_text(source))
    validate_header(lines)

    pages: List[ParsedPage] = []
    state: ScanState = AwaitingPage()

    for number, line in lines:
        if PAGE_MARKER_PATTERN.match(line):
            if isinstance(state, InPage):
                state.flush_unit()
                pages.append(state.page)
            state = InPage(page=ParsedPage())
            continue

        unit_match = UNIT_HEADER_PATTERN.match(line)
        if unit_match:
            if isinstance(state, AwaitingPage):
                raise LabelPlusFormatError("unit header before the first page marker", number, actual=line)
            state.flush_unit()
            state.unit = _parse_unit_header(number, unit_match)
            continue

        if not isinstance(state, InPage) or state.unit is None:
            continue

        comment_match = COMMENT_PATTERN.match(line)
        if comment_match:
            state.unit.open_comment(comment_match.group(1))
        elif line:
            state.unit.add_line(line)

    if isinstance(state, InPage):
        state.flush_unit()
        pages.append(state.page)

    logger.debug(f"Parsed LabelPlus file: {len(pages)} pages")
    return pages

"""
LabelPlus export of a comic's pages and units.

The output must round-trip through ``labelplus.parse_labelplus``: the header
is written byte-exact, units are renumbered 1..N per page, and comments are
merged with the same role markers the parser splits on.
"""

from __future__ import annotations

import logging
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Tuple

from .comments import merge_comments
from .database import ComicDatabase, PageRecord, UnitRecord
from .errors import ComicNotFoundError
from .labelplus import HEADER_LINES, IN_BOX_GROUP
from .utils import (
    sanitize_filename,
    shorten_by_one_rune,
    split_extension,
    truncate_runes,
    utf8_length,
)

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR = "Exported by PopRaKo Web"
OUT_OF_BOX_GROUP = "2"
COMMENT_PREFIX = "#[翻校注释]："

MAX_AUTHOR_RUNES = 20
MAX_TITLE_RUNES = 60
# Single path component limit on common filesystems
MAX_FILENAME_BYTES = 255
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

PageWithUnits = Tuple[PageRecord, Sequence[UnitRecord]]


def _render_filename(author: str, title: str, timestamp: str) -> str:
    return f"【{author}】{title}-{timestamp}.labelplus.txt"


def build_export_filename(author: str, title: str, now: Optional[datetime] = None) -> str:
    """
    Build the export file name for a comic.

    Author and title are sanitized and truncated (20 and 60 code points),
    then shortened one code point at a time, title first, until the UTF-8
    encoded name fits in 255 bytes.
    """
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    safe_author = truncate_runes(sanitize_filename(author), MAX_AUTHOR_RUNES)
    safe_title = truncate_runes(sanitize_filename(title), MAX_TITLE_RUNES)

    filename = _render_filename(safe_author, safe_title, timestamp)
    while utf8_length(filename) > MAX_FILENAME_BYTES:
        if len(safe_title) > 1:
            safe_title = shorten_by_one_rune(safe_title)
        elif len(safe_author) > 1:
            safe_author = shorten_by_one_rune(safe_author)
        else:
            break
        filename = _render_filename(safe_author, safe_title, timestamp)

    return filename


def select_main_text(proved_text: Optional[str], translated_text: Optional[str]) -> str:
    """Pick the unit text to export: proofread first, then translated."""
    if proved_text:
        return proved_text
    if translated_text:
        return translated_text
    return ""


def write_header(out: TextIO, generator: str = DEFAULT_GENERATOR) -> None:
    out.write("\n".join(HEADER_LINES))
    out.write(f"\n{generator}\n\n")


def write_page(out: TextIO, page: PageRecord, units: Sequence[UnitRecord]) -> None:
    _, extension = split_extension(page.oss_key)
    out.write(f"\n\n>>>>>>>>[page_{page.index}{extension}]<<<<<<<<\n")

    for number, unit in enumerate(sorted(units, key=lambda u: u.index), start=1):
        write_unit(out, unit, number)


def write_unit(out: TextIO, unit: UnitRecord, number: int) -> None:
    group = IN_BOX_GROUP if unit.is_in_box else OUT_OF_BOX_GROUP
    out.write(f"----------------[{number}]----------------[{unit.x:.4f},{unit.y:.4f},{group}]\n")

    main_text = select_main_text(unit.proved_text, unit.translated_text)
    if main_text:
        out.write(f"{main_text}\n")

    comment = merge_comments(unit.translator_comment, unit.proofreader_comment)
    if comment:
        out.write(f"\n{COMMENT_PREFIX}{comment}\n")

    out.write("\n")


def write_labelplus(
    out: TextIO,
    pages: Sequence[PageWithUnits],
    generator: str = DEFAULT_GENERATOR,
) -> None:
    write_header(out, generator)
    for page, units in sorted(pages, key=lambda item: item[0].index):
        write_page(out, page, units)


def render_labelplus(pages: Sequence[PageWithUnits], generator: str = DEFAULT_GENERATOR) -> str:
    """Render pages and their units as LabelPlus text."""
    buffer = StringIO()
    write_labelplus(buffer, pages, generator)
    return buffer.getvalue()


def export_labelplus_comic(
    store: ComicDatabase,
    comic_id: str,
    export_dir: Path,
    generator: str = DEFAULT_GENERATOR,
    now: Optional[datetime] = None,
) -> Path:
    """
    Export a comic to a LabelPlus file inside ``export_dir``.

    Pages are streamed one at a time; units are fetched per page.

    Returns:
        Absolute path of the written file

    Raises:
        ComicNotFoundError: If the comic does not exist
        OSError: If the file cannot be created or written; a partially
            written file is left in place
    """
    comic = store.get_comic(comic_id)
    if comic is None:
        raise ComicNotFoundError(comic_id)

    pages: List[PageRecord] = sorted(store.get_pages_by_comic(comic_id), key=lambda p: p.index)
    file_path = (export_dir / build_export_filename(comic.author, comic.title, now)).resolve()

    # newline="" keeps "\n" line endings on every platform
    with file_path.open("w", encoding="utf-8", newline="") as out:
        write_header(out, generator)
        for page in pages:
            write_page(out, page, store.get_units_by_page(page.id))

    logger.info(f"Exported comic {comic_id} ({len(pages)} pages) to {file_path}")
    return file_path

"""
Poprako JSON project parser.

The JSON variant carries explicit unit identifiers and keeps translated and
proofread text in separate fields, so it is validated far more strictly than
the LabelPlus text format. Every check runs over the fully decoded project
before anything touches the database.
"""

from __future__ import annotations

import json
import logging
import math
from typing import IO, List, Optional, Set, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from .comments import split_comment
from .errors import PoprakoValidationError
from .models import PoprakoPageFile, PoprakoProjectFile
from .parsed import ParsedPage, ParsedProject, ParsedUnit, ProjectFormat

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("author", "title", "pages")

_PAGES_ADAPTER = TypeAdapter(List[PoprakoPageFile])

PoprakoSource = Union[bytes, str, IO[bytes], IO[str]]


def _optional_text(value: Optional[str]) -> Optional[str]:
    return value if value else None


def decode_poprako_json(source: PoprakoSource) -> PoprakoProjectFile:
    """
    Decode a Poprako JSON document into its file model.

    The top-level object is inspected as a raw mapping first, so a missing
    or null ``pages`` field is reported separately from a malformed one.

    Raises:
        PoprakoValidationError: If the JSON is invalid, a required field is
            missing, or a field has the wrong shape
    """
    if hasattr(source, "read"):
        source = source.read()  # type: ignore[union-attr]

    try:
        raw = json.loads(source)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PoprakoValidationError(f"invalid json: {exc}") from exc

    if not isinstance(raw, dict):
        raise PoprakoValidationError("invalid json: top-level value must be an object")

    for name in REQUIRED_FIELDS:
        if name not in raw:
            raise PoprakoValidationError(f"missing required field: {name}")
    if raw["pages"] is None:
        raise PoprakoValidationError("pages must not be null")

    try:
        pages = _PAGES_ADAPTER.validate_python(raw["pages"])
    except ValidationError as exc:
        raise PoprakoValidationError(f"invalid pages field: {exc}") from exc

    for name in ("author", "title"):
        if not isinstance(raw[name], str):
            raise PoprakoValidationError(f"invalid {name} field: expected a string")

    project = PoprakoProjectFile(author=raw["author"], title=raw["title"], pages=pages)

    if not project.author.strip():
        raise PoprakoValidationError("author must not be empty")
    if not project.title.strip():
        raise PoprakoValidationError("title must not be empty")

    return project


def normalize_poprako_project(project: PoprakoProjectFile) -> ParsedProject:
    """
    Validate every page and unit and convert them to parsed pages.

    Units are returned sorted by ``index_in_page``; file order is not trusted.

    Raises:
        PoprakoValidationError: On the first page or unit that fails validation
    """
    pages: List[ParsedPage] = []

    for page_number, page in enumerate(project.pages, start=1):
        if not page.image_filename.strip():
            raise PoprakoValidationError(f"page {page_number}: image_filename must not be empty")

        seen_indexes: Set[int] = set()
        seen_ids: Set[Tuple[str, bool]] = set()
        units: List[ParsedUnit] = []

        for unit_number, unit in enumerate(page.units, start=1):
            where = f"page {page_number} unit {unit_number}"
            if not unit.id.strip():
                raise PoprakoValidationError(f"{where}: id must not be empty")
            if unit.index_in_page < 1:
                raise PoprakoValidationError(f"{where}: index_in_page must be >= 1")
            if not (math.isfinite(unit.x) and math.isfinite(unit.y)):
                raise PoprakoValidationError(f"{where}: x/y must be finite numbers")

            if unit.index_in_page in seen_indexes:
                raise PoprakoValidationError(
                    f"page {page_number}: duplicated index_in_page {unit.index_in_page}"
                )
            seen_indexes.add(unit.index_in_page)

            id_key = (unit.id, unit.is_local)
            if id_key in seen_ids:
                raise PoprakoValidationError(
                    f"page {page_number}: duplicated (id,is_local) pair for id={unit.id}"
                )
            seen_ids.add(id_key)

            translator_comment, proofreader_comment = split_comment(_optional_text(unit.comment))

            units.append(
                ParsedUnit(
                    index=unit.index_in_page,
                    x=unit.x,
                    y=unit.y,
                    is_in_box=unit.is_inbox,
                    translator_comment=translator_comment,
                    proofreader_comment=proofreader_comment,
                    source=ProjectFormat.POPRAKO_JSON,
                    id=unit.id,
                    translated_text=_optional_text(unit.translated_text),
                    proved_text=_optional_text(unit.prooved_text),
                    is_proved=unit.is_prooved,
                )
            )

        units.sort(key=lambda u: u.index)
        pages.append(ParsedPage(units=units))

    return ParsedProject(author=project.author, title=project.title, pages=pages)


def parse_poprako(source: PoprakoSource) -> ParsedProject:
    """Decode, validate and normalise a Poprako JSON project in one call."""
    project = normalize_poprako_project(decode_poprako_json(source))
    logger.debug(f"Parsed Poprako project {project.title!r}: {len(project.pages)} pages")
    return project

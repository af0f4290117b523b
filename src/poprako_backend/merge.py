"""
Merge of parsed project pages into a comic's stored pages.

Pages are matched purely by position: the n-th parsed page replaces the units
of the n-th stored page ordered by page index. Each non-protected page has
its units deleted and recreated from the file; a page that already holds
proofread units is never overwritten by a translator import.

The whole merge runs inside one store transaction, so a failure on any page
rolls back every page replaced earlier in the same call.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence
from uuid import uuid4

from .database import NewUnit, PageRecord, UnitRecord
from .errors import PageCountMismatchError
from .parsed import ParsedPage, ParsedUnit, ProjectFormat

logger = logging.getLogger(__name__)


class ImportRole(str, Enum):
    TRANSLATOR = "translator"
    PROOFREADER = "proofreader"


@dataclass(frozen=True)
class ImportOptions:
    """
    Who is importing and in which capacity.

    Attributes:
        role: Selects the text layer (translator or proofreader) written
        acting_user_id: Stamped as creator and as translator/proofreader
    """

    role: ImportRole
    acting_user_id: str

    @property
    def is_proofreader(self) -> bool:
        return self.role is ImportRole.PROOFREADER

    @classmethod
    def for_assignment(cls, acting_user_id: str, is_proofreader: bool) -> "ImportOptions":
        role = ImportRole.PROOFREADER if is_proofreader else ImportRole.TRANSLATOR
        return cls(role=role, acting_user_id=acting_user_id)


@dataclass
class MergeResult:
    replaced_pages: int = 0
    skipped_pages: int = 0
    created_units: int = 0


class ProjectStore(Protocol):
    """Page/unit storage the merge engine reads from and writes to."""

    def transaction(self) -> AbstractContextManager[sqlite3.Connection]: ...

    def get_pages_by_comic(
        self, comic_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[PageRecord]: ...

    def get_units_by_page(
        self, page_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[UnitRecord]: ...

    def delete_units(self, unit_ids: Sequence[str], conn: Optional[sqlite3.Connection] = None) -> None: ...

    def create_units(self, rows: Sequence[NewUnit], conn: Optional[sqlite3.Connection] = None) -> None: ...


def build_unit_row(page_id: str, unit: ParsedUnit, options: ImportOptions) -> NewUnit:
    """
    Map a parsed unit to a new database row for the importer's role.

    LabelPlus units carry a single main text, which lands in the proofread
    layer (marked proved) for proofreaders and in the translated layer for
    translators. Poprako JSON units carry both layers and their proved flag
    explicitly; those pass through and only the identity is role-dependent.
    """
    user_id = options.acting_user_id
    row = NewUnit(
        id=str(uuid4()),
        page_id=page_id,
        index=unit.index,
        x=unit.x,
        y=unit.y,
        is_in_box=unit.is_in_box,
        translator_comment=unit.translator_comment,
        proofreader_comment=unit.proofreader_comment,
        creator_id=user_id,
    )

    if unit.source is ProjectFormat.POPRAKO_JSON:
        row.translated_text = unit.translated_text
        row.proved_text = unit.proved_text
        row.proved = unit.is_proved
    elif options.role is ImportRole.PROOFREADER:
        row.proved_text = unit.main_text
        row.proved = True
    else:
        row.translated_text = unit.main_text
        row.proved = False

    if options.role is ImportRole.PROOFREADER:
        row.proofreader_id = user_id
    else:
        row.translator_id = user_id

    return row


def _is_protected(existing_units: Sequence[UnitRecord], options: ImportOptions) -> bool:
    return not options.is_proofreader and any(unit.proved for unit in existing_units)


def merge_parsed_pages(
    store: ProjectStore,
    comic_id: str,
    parsed_pages: Sequence[ParsedPage],
    options: ImportOptions,
) -> MergeResult:
    """
    Replace the units of a comic's pages with the parsed pages.

    Args:
        store: Page/unit store providing the transaction boundary
        comic_id: Comic whose pages are replaced
        parsed_pages: Pages in file order
        options: Importer identity and role

    Returns:
        Counts of replaced pages, skipped (protected) pages and created units

    Raises:
        PageCountMismatchError: If the file and the comic have different
            page counts; nothing is modified
        sqlite3.Error: Any storage failure, after the transaction has been
            rolled back
    """
    result = MergeResult()

    with store.transaction() as conn:
        existing_pages = sorted(store.get_pages_by_comic(comic_id, conn), key=lambda p: p.index)
        if len(parsed_pages) != len(existing_pages):
            raise PageCountMismatchError(len(parsed_pages), len(existing_pages))

        for parsed_page, page in zip(parsed_pages, existing_pages):
            existing_units = store.get_units_by_page(page.id, conn)

            if _is_protected(existing_units, options):
                logger.info(f"Skipping page {page.index} of comic {comic_id}: it holds proofread units")
                result.skipped_pages += 1
                continue

            store.delete_units([unit.id for unit in existing_units], conn)

            rows = [build_unit_row(page.id, unit, options) for unit in parsed_page.units]
            store.create_units(rows, conn)

            result.replaced_pages += 1
            result.created_units += len(rows)

    return result

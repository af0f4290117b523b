"""
SQLite storage for comics, pages and translation units.

This module provides the page/unit store the import and export paths work
against. Reads and writes may run standalone (each opening its own
connection) or inside a caller-owned transaction obtained from
``ComicDatabase.transaction()``.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence
from uuid import uuid4

# Default database path
DEFAULT_DB_PATH = Path("data/poprako.db")


def _ensure_db_dir(db_path: Path) -> None:
    """Ensure the database directory exists."""
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _serialize_datetime(dt: datetime) -> str:
    """Serialize datetime to ISO format string."""
    return dt.isoformat()


def _deserialize_datetime(s: Optional[str]) -> Optional[datetime]:
    """Deserialize ISO format string to datetime."""
    if not s:
        return None
    return datetime.fromisoformat(s)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ComicRecord:
    id: str
    author: str
    title: str


@dataclass
class PageRecord:
    """
    A stored comic page.

    Attributes:
        id: Page identifier
        comic_id: Owning comic
        index: Position of the page within the comic
        oss_key: Object storage key of the page image; its extension is
            reused when naming pages in exports
        size_bytes: Image size as reported at upload time
        uploaded: Whether the image upload was confirmed
    """

    id: str
    comic_id: str
    index: int
    oss_key: str
    size_bytes: int = 0
    uploaded: bool = False


@dataclass
class NewUnit:
    """A unit row about to be inserted."""

    id: str
    page_id: str
    index: int
    x: float
    y: float
    is_in_box: bool
    translated_text: Optional[str] = None
    translator_id: Optional[str] = None
    translator_comment: Optional[str] = None
    proved_text: Optional[str] = None
    proved: bool = False
    proofreader_id: Optional[str] = None
    proofreader_comment: Optional[str] = None
    creator_id: Optional[str] = None


@dataclass
class UnitRecord(NewUnit):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ComicDatabase:
    """
    SQLite database for comic pages and units.

    Thread-safe: each operation uses its own connection; write transactions
    take the database write lock up front with BEGIN IMMEDIATE.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH, timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        _ensure_db_dir(self.db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a standalone autocommit connection."""
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _use(self, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return
        with self._get_connection() as own:
            yield own

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Open a write transaction spanning every call that receives the
        yielded connection.

        The transaction commits when the block exits normally and rolls back
        when it raises; the exception is re-raised unchanged.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS comics (
                    id TEXT PRIMARY KEY,
                    author TEXT NOT NULL,
                    title TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS pages (
                    id TEXT PRIMARY KEY,
                    comic_id TEXT NOT NULL REFERENCES comics(id) ON DELETE CASCADE,
                    page_index INTEGER NOT NULL,
                    oss_key TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL DEFAULT 0,
                    uploaded INTEGER NOT NULL DEFAULT 0
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS units (
                    id TEXT PRIMARY KEY,
                    page_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
                    unit_index INTEGER NOT NULL,
                    x REAL NOT NULL,
                    y REAL NOT NULL,
                    is_in_box INTEGER NOT NULL,
                    translated_text TEXT,
                    translator_id TEXT,
                    translator_comment TEXT,
                    proved_text TEXT,
                    proved INTEGER NOT NULL DEFAULT 0,
                    proofreader_id TEXT,
                    proofreader_comment TEXT,
                    creator_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_pages_comic
                ON pages(comic_id, page_index)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_units_page
                ON units(page_id, unit_index)
            """)

    def create_comic(self, author: str, title: str, comic_id: Optional[str] = None) -> ComicRecord:
        record = ComicRecord(id=comic_id or str(uuid4()), author=author, title=title)
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO comics (id, author, title, created_at) VALUES (?, ?, ?, ?)",
                (record.id, record.author, record.title, _serialize_datetime(_now())),
            )
        return record

    def get_comic(self, comic_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[ComicRecord]:
        """
        Retrieve a comic by ID.

        Returns:
            The comic record or None if not found
        """
        with self._use(conn) as c:
            row = c.execute(
                "SELECT id, author, title FROM comics WHERE id = ?", (comic_id,)
            ).fetchone()
        if not row:
            return None
        return ComicRecord(id=row["id"], author=row["author"], title=row["title"])

    def create_page(
        self,
        comic_id: str,
        index: int,
        oss_key: str,
        size_bytes: int = 0,
        uploaded: bool = True,
    ) -> PageRecord:
        record = PageRecord(
            id=str(uuid4()),
            comic_id=comic_id,
            index=index,
            oss_key=oss_key,
            size_bytes=size_bytes,
            uploaded=uploaded,
        )
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO pages (id, comic_id, page_index, oss_key, size_bytes, uploaded)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (record.id, comic_id, index, oss_key, size_bytes, int(uploaded)),
            )
        return record

    def get_pages_by_comic(
        self, comic_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[PageRecord]:
        """List a comic's pages ordered by page index."""
        with self._use(conn) as c:
            rows = c.execute(
                "SELECT * FROM pages WHERE comic_id = ? ORDER BY page_index, id",
                (comic_id,),
            ).fetchall()
        return [self._row_to_page(row) for row in rows]

    def get_units_by_page(
        self, page_id: str, conn: Optional[sqlite3.Connection] = None
    ) -> List[UnitRecord]:
        """List a page's units ordered by unit index."""
        with self._use(conn) as c:
            rows = c.execute(
                "SELECT * FROM units WHERE page_id = ? ORDER BY unit_index, created_at, id",
                (page_id,),
            ).fetchall()
        return [self._row_to_unit(row) for row in rows]

    def delete_units(self, unit_ids: Sequence[str], conn: Optional[sqlite3.Connection] = None) -> None:
        if not unit_ids:
            return
        with self._use(conn) as c:
            c.executemany("DELETE FROM units WHERE id = ?", [(unit_id,) for unit_id in unit_ids])

    def create_units(self, rows: Sequence[NewUnit], conn: Optional[sqlite3.Connection] = None) -> None:
        if not rows:
            return
        timestamp = _serialize_datetime(_now())
        with self._use(conn) as c:
            c.executemany(
                """
                INSERT INTO units (
                    id, page_id, unit_index, x, y, is_in_box,
                    translated_text, translator_id, translator_comment,
                    proved_text, proved, proofreader_id, proofreader_comment,
                    creator_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        row.id,
                        row.page_id,
                        row.index,
                        row.x,
                        row.y,
                        int(row.is_in_box),
                        row.translated_text,
                        row.translator_id,
                        row.translator_comment,
                        row.proved_text,
                        int(row.proved),
                        row.proofreader_id,
                        row.proofreader_comment,
                        row.creator_id,
                        timestamp,
                        timestamp,
                    )
                    for row in rows
                ],
            )

    def _row_to_page(self, row: sqlite3.Row) -> PageRecord:
        return PageRecord(
            id=row["id"],
            comic_id=row["comic_id"],
            index=row["page_index"],
            oss_key=row["oss_key"],
            size_bytes=row["size_bytes"],
            uploaded=bool(row["uploaded"]),
        )

    def _row_to_unit(self, row: sqlite3.Row) -> UnitRecord:
        """Convert a database row to a unit record."""
        return UnitRecord(
            id=row["id"],
            page_id=row["page_id"],
            index=row["unit_index"],
            x=row["x"],
            y=row["y"],
            is_in_box=bool(row["is_in_box"]),
            translated_text=row["translated_text"],
            translator_id=row["translator_id"],
            translator_comment=row["translator_comment"],
            proved_text=row["proved_text"],
            proved=bool(row["proved"]),
            proofreader_id=row["proofreader_id"],
            proofreader_comment=row["proofreader_comment"],
            creator_id=row["creator_id"],
            created_at=_deserialize_datetime(row["created_at"]),
            updated_at=_deserialize_datetime(row["updated_at"]),
        )

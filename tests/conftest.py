"""
Pytest configuration and fixtures for PopRaKo Backend tests.
"""

import os
import shutil
import tempfile

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
_TEST_ROOT = tempfile.mkdtemp(prefix="poprako_test_")
os.environ["POPRAKO_DB_PATH"] = os.path.join(_TEST_ROOT, "app.db")
os.environ["POPRAKO_EXPORT_DIR"] = os.path.join(_TEST_ROOT, "exports")

from poprako_backend.database import ComicDatabase, NewUnit
from poprako_backend.main import app, project_service
from poprako_backend.project_service import ProjectService


@pytest.fixture(scope="session", autouse=True)
def test_root():
    """Cleanup the app's database and export directory after all tests."""
    yield _TEST_ROOT
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def app_store():
    """The store behind the app's project service."""
    return project_service.store


@pytest.fixture
def store(tmp_path):
    """A fresh database per test."""
    return ComicDatabase(tmp_path / "comics.db")


@pytest.fixture
def service(store, tmp_path):
    return ProjectService(store, export_dir=tmp_path / "exports", max_exports=3)


@pytest.fixture
def make_comic():
    """Create a comic with ``page_count`` pages in the given store."""

    def _make(store, page_count=1, author="作者", title="标题", ext=".jpg"):
        comic = store.create_comic(author=author, title=title)
        pages = [
            store.create_page(comic.id, index=i, oss_key=f"comics/{comic.id}/{i:04d}{ext}")
            for i in range(1, page_count + 1)
        ]
        return comic, pages

    return _make


@pytest.fixture
def add_unit():
    """Insert a single unit row directly into a page."""

    def _add(store, page, index=1, **fields):
        row = NewUnit(
            id=fields.pop("id", f"{page.id}-u{index}"),
            page_id=page.id,
            index=index,
            x=fields.pop("x", 10.0),
            y=fields.pop("y", 20.0),
            is_in_box=fields.pop("is_in_box", True),
            **fields,
        )
        store.create_units([row])
        return row

    return _add


def labelplus_text(*pages):
    """
    Build a LabelPlus document.

    Each page is a list of unit blocks; each block is the text that follows
    the unit header (already newline-terminated or empty).
    """
    parts = ["1,0\n-\n框内\n框外\n-\nTest generator\n\n"]
    for page_number, units in enumerate(pages, start=1):
        parts.append(f"\n\n>>>>>>>>[page_{page_number}.jpg]<<<<<<<<\n")
        for unit_number, (x, y, group, body) in enumerate(units, start=1):
            parts.append(f"----------------[{unit_number}]----------------[{x:.4f},{y:.4f},{group}]\n")
            parts.append(body)
            parts.append("\n")
    return "".join(parts)


@pytest.fixture
def build_labelplus():
    return labelplus_text

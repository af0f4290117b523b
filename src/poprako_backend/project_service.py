"""
Project import/export coordination for comics.

This module is the single entry point the HTTP layer uses for project files:
- Exporting a comic to a LabelPlus file in the export directory
- Importing LabelPlus or Poprako JSON projects into a comic's pages
- Choosing the import path from an uploaded file's extension
- Keeping the export directory bounded in size

Authorization is the caller's job; by the time a request reaches this
module, ImportOptions already says who is importing and in which role.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote

from omegaconf import DictConfig

from .database import ComicDatabase
from .errors import ComicNotFoundError, ProjectCodecError, UnsupportedProjectExtensionError
from .export import DEFAULT_GENERATOR, export_labelplus_comic
from .labelplus import parse_labelplus
from .merge import ImportOptions, MergeResult, merge_parsed_pages
from .parsed import ParsedPage, ProjectFormat
from .poprako import parse_poprako
from .utils import ensure_directory, split_extension

logger = logging.getLogger(__name__)

LABELPLUS_EXTENSION = ".txt"

ProjectData = Union[bytes, str]


class ProjectService:
    """
    Coordinates parsing, merging and exporting of comic project files.

    Attributes:
        store: Page/unit storage
        export_dir: Directory that receives exported files
        max_exports: Number of export files kept before the oldest are removed
        generator: Free-form line written into exported LabelPlus headers
        export_base_uri: URI prefix under which exported files are served
    """

    def __init__(
        self,
        store: ComicDatabase,
        export_dir: Path,
        max_exports: int = 30,
        generator: str = DEFAULT_GENERATOR,
        export_base_uri: str = "/comics/export/",
    ) -> None:
        self.store = store
        self.export_dir = ensure_directory(Path(export_dir))
        self.max_exports = max_exports
        self.generator = generator
        self.export_base_uri = export_base_uri

    @classmethod
    def from_config(cls, config: DictConfig, store: Optional[ComicDatabase] = None) -> "ProjectService":
        return cls(
            store=store or ComicDatabase(Path(config.database_path)),
            export_dir=Path(config.export_dir),
            max_exports=int(config.max_exports),
            generator=str(config.export_generator),
            export_base_uri=str(config.export_base_uri),
        )

    def export_project(self, comic_id: str) -> Path:
        """
        Export a comic to a LabelPlus file.

        Returns:
            Absolute path of the exported file

        Raises:
            ComicNotFoundError: If the comic does not exist
            OSError: If the export file cannot be written
        """
        ensure_directory(self.export_dir)
        try:
            self.clean_old_exports()
        except OSError as exc:
            logger.warning(f"Failed to clean old exports in {self.export_dir}: {exc}")

        return export_labelplus_comic(
            self.store,
            comic_id,
            self.export_dir,
            generator=self.generator,
        )

    def export_uri(self, file_path: Path) -> str:
        return self.export_base_uri + quote(file_path.name, safe="")

    def resolve_export_file(self, filename: str) -> Path:
        """
        Resolve a served export file name to a path inside the export directory.

        Raises:
            ValueError: If the name escapes the export directory
            FileNotFoundError: If no such export exists
        """
        base_path = self.export_dir.resolve()
        file_path = (base_path / filename).resolve()
        if file_path.parent != base_path:
            raise ValueError("Invalid export file name")
        if not file_path.is_file():
            raise FileNotFoundError("Export file not found")
        return file_path

    def clean_old_exports(self) -> List[Path]:
        """
        Remove the oldest export files while more than ``max_exports`` remain.

        A file that cannot be removed is logged and skipped; the rest are
        still removed.

        Returns:
            Paths of the removed files
        """
        files = [path for path in self.export_dir.iterdir() if path.is_file()]
        if len(files) <= self.max_exports:
            return []

        files.sort(key=lambda path: path.stat().st_mtime)
        removed: List[Path] = []
        for path in files[: len(files) - self.max_exports]:
            try:
                path.unlink()
            except OSError as exc:
                logger.warning(f"Failed to remove old export {path.name}: {exc}")
                continue
            removed.append(path)
            logger.info(f"Removed old export {path.name}")
        return removed

    def parse_project(self, data: ProjectData, project_format: ProjectFormat) -> List[ParsedPage]:
        if project_format is ProjectFormat.POPRAKO_JSON:
            return parse_poprako(data).pages
        return parse_labelplus(data)

    def import_project(
        self,
        data: ProjectData,
        comic_id: str,
        options: ImportOptions,
        project_format: ProjectFormat = ProjectFormat.LABELPLUS,
    ) -> MergeResult:
        """
        Parse a project file and merge it into a comic's pages.

        Parsing and validation finish before the database is touched, so a
        malformed file never causes a write.

        Args:
            data: Raw project file contents
            comic_id: Comic whose pages are replaced
            options: Importer identity and role
            project_format: Which parser to use

        Returns:
            Merge counts

        Raises:
            ProjectFormatError / ProjectValidationError: Malformed input
            ComicNotFoundError: If the comic does not exist
            PageCountMismatchError: File and comic page counts differ
            sqlite3.Error: Storage failure; all changes are rolled back
        """
        try:
            parsed_pages = self.parse_project(data, project_format)
        except ProjectCodecError as exc:
            logger.warning(f"Rejected {project_format.value} project for comic {comic_id}: {exc}")
            raise

        if self.store.get_comic(comic_id) is None:
            raise ComicNotFoundError(comic_id)

        try:
            result = merge_parsed_pages(self.store, comic_id, parsed_pages, options)
        except ProjectCodecError as exc:
            logger.warning(f"Import into comic {comic_id} refused: {exc}")
            raise
        except Exception as exc:
            logger.error(f"Import into comic {comic_id} failed and was rolled back: {exc}")
            raise

        logger.info(
            f"Imported {project_format.value} project into comic {comic_id} as "
            f"{options.role.value}: {result.replaced_pages} pages replaced, "
            f"{result.skipped_pages} skipped, {result.created_units} units created"
        )
        return result

    def import_project_file(
        self,
        filename: str,
        data: ProjectData,
        comic_id: str,
        options: ImportOptions,
    ) -> MergeResult:
        """
        Import an uploaded project file, choosing the parser by extension.

        Only ``.txt`` (LabelPlus) is accepted; anything else is rejected
        before parsing.

        Raises:
            UnsupportedProjectExtensionError: For any other extension
        """
        _, extension = split_extension(filename)
        extension = extension.lower()
        if extension != LABELPLUS_EXTENSION:
            logger.warning(f"Unsupported project file extension {extension!r} for comic {comic_id}")
            raise UnsupportedProjectExtensionError(extension)

        return self.import_project(data, comic_id, options, ProjectFormat.LABELPLUS)

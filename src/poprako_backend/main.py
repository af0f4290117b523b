from __future__ import annotations

import logging
from typing import Dict, NoReturn

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from .configuration import get_config
from .errors import (
    ComicNotFoundError,
    PageCountMismatchError,
    ProjectCodecError,
    ProjectFormatError,
    ProjectValidationError,
    UnsupportedProjectExtensionError,
)
from .merge import ImportOptions, MergeResult
from .models import ExportComicReply, ImportComicReply
from .parsed import ProjectFormat
from .project_service import ProjectService

logger = logging.getLogger(__name__)

app = FastAPI(title="PopRaKo Project API", version="0.1.0")

allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

project_service = ProjectService.from_config(get_config())


def get_project_service() -> ProjectService:
    return project_service


def _raise_http(exc: ProjectCodecError) -> NoReturn:
    if isinstance(exc, ComicNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, UnsupportedProjectExtensionError):
        raise HTTPException(status_code=400, detail={"code": "INVALID_PROJ_EXT", "message": str(exc)}) from exc
    if isinstance(exc, (ProjectFormatError, ProjectValidationError)):
        raise HTTPException(status_code=422, detail={"code": "INVALID_PROJ_DATA", "message": str(exc)}) from exc
    if isinstance(exc, PageCountMismatchError):
        raise HTTPException(status_code=409, detail={"code": "PAGE_COUNT_MISMATCH", "message": str(exc)}) from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc


def _to_reply(result: MergeResult) -> ImportComicReply:
    return ImportComicReply(
        replaced_pages=result.replaced_pages,
        skipped_pages=result.skipped_pages,
        created_units=result.created_units,
    )


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/comics/{comic_id}/export", response_model=ExportComicReply)
def export_comic(comic_id: str, service: ProjectService = Depends(get_project_service)) -> ExportComicReply:
    try:
        file_path = service.export_project(comic_id)
    except ProjectCodecError as exc:  # noqa: BLE001
        _raise_http(exc)
    return ExportComicReply(export_uri=service.export_uri(file_path))


@app.get("/comics/export/{filename}")
def download_export(filename: str, service: ProjectService = Depends(get_project_service)):
    try:
        file_path = service.resolve_export_file(filename)
    except ValueError as exc:  # noqa: BLE001
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except FileNotFoundError as exc:  # noqa: BLE001
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return FileResponse(file_path, media_type="text/plain; charset=utf-8", filename=file_path.name)


@app.post("/comics/{comic_id}/import", response_model=ImportComicReply)
async def import_comic(
    comic_id: str,
    file: UploadFile = File(...),
    user_id: str = Form(...),
    is_proofreader: bool = Form(False),
    service: ProjectService = Depends(get_project_service),
) -> ImportComicReply:
    if not file.filename:
        raise HTTPException(status_code=400, detail="Project file must have a filename")

    data = await file.read()
    await file.close()

    options = ImportOptions.for_assignment(user_id, is_proofreader)
    try:
        result = service.import_project_file(file.filename, data, comic_id, options)
    except ProjectCodecError as exc:  # noqa: BLE001
        _raise_http(exc)
    return _to_reply(result)


@app.post("/comics/{comic_id}/import/poprako", response_model=ImportComicReply)
async def import_poprako_comic(
    comic_id: str,
    file: UploadFile = File(...),
    user_id: str = Form(...),
    is_proofreader: bool = Form(False),
    service: ProjectService = Depends(get_project_service),
) -> ImportComicReply:
    data = await file.read()
    await file.close()

    options = ImportOptions.for_assignment(user_id, is_proofreader)
    try:
        result = service.import_project(data, comic_id, options, ProjectFormat.POPRAKO_JSON)
    except ProjectCodecError as exc:  # noqa: BLE001
        _raise_http(exc)
    return _to_reply(result)

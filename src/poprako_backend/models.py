from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PoprakoUnitFile(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    id: str = ""
    x: float = 0.0
    y: float = 0.0
    index_in_page: int = 0
    is_inbox: bool = False
    translated_text: Optional[str] = None
    prooved_text: Optional[str] = None
    is_prooved: bool = False
    comment: Optional[str] = None
    is_local: bool = False


class PoprakoPageFile(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    image_filename: str = ""
    units: List[PoprakoUnitFile] = Field(default_factory=list)


class PoprakoProjectFile(BaseModel):
    author: str
    title: str
    pages: List[PoprakoPageFile]


class ExportComicReply(BaseModel):
    export_uri: str


class ImportComicReply(BaseModel):
    status: str = "imported"
    replaced_pages: int
    skipped_pages: int
    created_units: int

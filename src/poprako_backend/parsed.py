"""
Transient structures produced by the project parsers.

Both the LabelPlus and the Poprako JSON parsers normalise into ParsedPage
lists so the merge engine never needs to know which format a file came from,
beyond the ProjectFormat tag carried on each unit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ProjectFormat(str, Enum):
    LABELPLUS = "labelplus"
    POPRAKO_JSON = "poprako_json"


@dataclass
class ParsedUnit:
    """
    A positioned translation unit read from a project file.

    Attributes:
        index: 1-based position of the unit within its page
        x: Horizontal coordinate (finite)
        y: Vertical coordinate (finite)
        is_in_box: True when the text sits inside a speech bubble
        main_text: Single text body (LabelPlus only)
        translator_comment: Translator part of the comment block
        proofreader_comment: Proofreader part of the comment block
        source: Which parser produced the unit
        id: Client-side unit identifier (JSON only)
        translated_text: Translator layer text (JSON only)
        proved_text: Proofreader layer text (JSON only)
        is_proved: Whether the proofreader layer is final (JSON only)
    """

    index: int
    x: float
    y: float
    is_in_box: bool
    main_text: Optional[str] = None
    translator_comment: Optional[str] = None
    proofreader_comment: Optional[str] = None
    source: ProjectFormat = ProjectFormat.LABELPLUS
    id: Optional[str] = None
    translated_text: Optional[str] = None
    proved_text: Optional[str] = None
    is_proved: bool = False


@dataclass
class ParsedPage:
    units: List[ParsedUnit] = field(default_factory=list)


@dataclass
class ParsedProject:
    author: str
    title: str
    pages: List[ParsedPage] = field(default_factory=list)

"""
Splitting and merging of translator/proofreader comment blocks.

A unit carries two comment fields, but both project formats store a single
free-text block. Each line of that block may start with a role marker;
unmarked lines continue whichever role was last opened (translator by
default).
"""

from __future__ import annotations

from typing import List, Optional, Tuple

TRANSLATOR_MARKER = "【翻译】"
PROOFREADER_MARKER = "【校对】"


def split_comment(text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Partition a comment block into translator and proofreader comments.

    Args:
        text: The raw comment block, possibly spanning multiple lines

    Returns:
        A tuple of (translator_comment, proofreader_comment); a role with no
        lines yields None rather than an empty string

    Example:
        >>> split_comment("【翻译】foo\\n【校对】bar")
        ('foo', 'bar')
        >>> split_comment("plain note")
        ('plain note', None)
    """
    if not text:
        return None, None

    translator_lines: List[str] = []
    proofreader_lines: List[str] = []
    current = translator_lines

    for line in text.split("\n"):
        if line.startswith(TRANSLATOR_MARKER):
            current = translator_lines
            current.append(line[len(TRANSLATOR_MARKER):])
        elif line.startswith(PROOFREADER_MARKER):
            current = proofreader_lines
            current.append(line[len(PROOFREADER_MARKER):])
        else:
            current.append(line)

    translator = "\n".join(translator_lines) if translator_lines else None
    proofreader = "\n".join(proofreader_lines) if proofreader_lines else None
    return translator, proofreader


def merge_comments(translator_comment: Optional[str], proofreader_comment: Optional[str]) -> str:
    """Inverse of split_comment: prefix each non-empty comment with its role marker."""
    parts = []
    if translator_comment:
        parts.append(TRANSLATOR_MARKER + translator_comment)
    if proofreader_comment:
        parts.append(PROOFREADER_MARKER + proofreader_comment)
    return "\n".join(parts)

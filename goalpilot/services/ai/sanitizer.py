"""Markdown cleanup for model-generated prose."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

# Check marks may arrive with an emoji variation selector (U+FE0F) attached.
_BULLET_GLYPHS = "-*•·‣∙◦✔✓"

_FENCED_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`([^`]*)`")
_BOLD = re.compile(r"\*\*([^*\n]+)\*\*")
_ITALIC = re.compile(r"\*([^*\n]+)\*")
_UNDERSCORE = re.compile(r"(?<!\w)_([^_\n]+)_(?!\w)")
_HEADING = re.compile(r"^#{1,6}[ \t]+", re.MULTILINE)
_LIST_BULLET = re.compile(rf"^[ \t]*[{re.escape(_BULLET_GLYPHS)}]\ufe0f?[ \t]+", re.MULTILINE)
_NUMBERED = re.compile(r"^[ \t]*\d+[.)][ \t]+", re.MULTILINE)
_STRAY_GLYPHS = re.compile("[•◆◦▪\ufe0e▸►–—]+")
_TRAILING_SPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXCESS_NEWLINES = re.compile(r"\n{3,}")

_LIST_MARKER_PREFIX = re.compile(rf"^(?:[{re.escape(_BULLET_GLYPHS)}\ufe0f\s]|\d+[.)](?=\s|$))+")
_INNER_WHITESPACE = re.compile(r"\s{2,}")

_PASSES = (
    (_FENCED_BLOCK, ""),
    (_INLINE_CODE, r"\1"),
    (_BOLD, r"\1"),
    (_ITALIC, r"\1"),
    (_UNDERSCORE, r"\1"),
    (_HEADING, ""),
    (_LIST_BULLET, ""),
    (_NUMBERED, ""),
    (_STRAY_GLYPHS, " "),
    (_TRAILING_SPACE, ""),
    (_EXCESS_NEWLINES, "\n\n"),
)


def _clean_once(text: str) -> str:
    for pattern, replacement in _PASSES:
        text = pattern.sub(replacement, text)
    return text.strip()


def sanitize(text: Optional[str]) -> str:
    """
    Strip markdown artifacts from generated prose.

    Passes are re-applied until the text stops changing: removing one marker
    can expose another (``**a*b**``), and callers rely on
    ``sanitize(sanitize(x)) == sanitize(x)``. Every pass only deletes
    characters or swaps a glyph for a space, so the loop terminates.
    """
    if not text:
        return ""
    current = text
    while True:
        cleaned = _clean_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned


def sanitize_list_lines(lines: Iterable[str]) -> List[str]:
    """Turn bullet/numbered list lines into plain sentences, dropping blanks."""
    cleaned: List[str] = []
    for line in lines:
        line = _LIST_MARKER_PREFIX.sub("", line or "")
        line = _INNER_WHITESPACE.sub(" ", line).strip()
        if line:
            cleaned.append(line)
    return cleaned

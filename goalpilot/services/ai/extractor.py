"""Recover JSON payloads embedded in free-form model output."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Locator = Callable[[str], Optional[str]]

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def fenced_block(text: str) -> Optional[str]:
    """Contents of the first ``` fence (optionally tagged json)."""
    match = _FENCED_JSON.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def greedy_span(opening: str, closing: str) -> Locator:
    """Build a locator for the span from the first `opening` to the last `closing`."""

    def locate(text: str) -> Optional[str]:
        start = text.find(opening)
        end = text.rfind(closing)
        if start == -1 or end <= start:
            return None
        return text[start : end + 1]

    return locate


# Tried in order; the first candidate that parses (and has the expected type) wins.
STRATEGIES: Tuple[Tuple[str, Locator], ...] = (
    ("fenced", fenced_block),
    ("array", greedy_span("[", "]")),
    ("object", greedy_span("{", "}")),
)


def extract_json(
    text: Optional[str],
    *,
    expect: Optional[type] = None,
    strategies: Sequence[Tuple[str, Locator]] = STRATEGIES,
) -> Any:
    """
    Return the first JSON value recoverable from `text`, or None.

    Each strategy proposes a candidate substring; candidates that fail to
    parse, or parse to something other than `expect` when it is given, fall
    through to the next strategy. Never raises on malformed input.
    """
    if not text:
        return None

    for name, locate in strategies:
        candidate = locate(text)
        if candidate is None:
            continue
        try:
            value = json.loads(candidate)
        except ValueError:
            logger.debug("JSON %s candidate did not parse", name)
            continue
        if expect is not None and not isinstance(value, expect):
            logger.debug("JSON %s candidate is %s, wanted %s", name, type(value).__name__, expect.__name__)
            continue
        return value
    return None

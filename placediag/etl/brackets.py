"""Balanced-bracket slicing for JSON blobs embedded in page markup."""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}", "]"}


def slice_balanced(text: str, start_index: int) -> Optional[str]:
    """Return the balanced ``{...}`` or ``[...]`` substring starting at ``start_index``.

    Brackets inside double-quoted strings are ignored (backslash escapes honoured).
    Returns None when ``text[start_index]`` is not an opening bracket, when the
    text ends before the brackets balance, or when a closer does not match.
    """
    if not text or start_index < 0 or start_index >= len(text):
        return None
    opener = text[start_index]
    if opener not in _OPENERS:
        return None

    stack = [_OPENERS[opener]]
    in_string = False
    escaped = False

    for index in range(start_index + 1, len(text)):
        char = text[index]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS:
            if stack.pop() != char:
                return None
            if not stack:
                return text[start_index : index + 1]

    return None


def find_json_start(text: str, offset: int = 0) -> int:
    """Index of the first ``{`` or ``[`` at or after ``offset``, or -1."""
    brace = text.find("{", offset)
    bracket = text.find("[", offset)
    candidates = [idx for idx in (brace, bracket) if idx >= 0]
    return min(candidates) if candidates else -1


def json_at(text: str, start_index: int) -> Optional[Any]:
    """Decode the balanced JSON object/array opening at ``start_index``, or None."""
    chunk = slice_balanced(text, start_index)
    if chunk is None:
        logger.debug("Unbalanced JSON at offset %d", start_index)
        return None

    try:
        return json.loads(chunk)
    except ValueError as exc:
        logger.debug("JSON at offset %d did not decode: %s", start_index, exc)
        return None


def json_after_marker(text: str, marker: str) -> Optional[Any]:
    """Decode the first JSON object/array that follows ``marker`` in ``text``."""
    if not text:
        return None
    idx = text.find(marker)
    if idx < 0:
        return None

    start = find_json_start(text, idx + len(marker))
    if start < 0:
        return None
    return json_at(text, start)

"""Locate and parse the JSON object embedded in a model reply.

Models often wrap the requested object in prose or markdown fences, so the
reply is scanned for the first brace-balanced ``{...}`` span that parses.
"""

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ResponseParseError(ValueError):
    """Raised when a model reply contains no parseable JSON object."""


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """Return the first JSON object found in *text*.

    Args:
        text: Raw model reply

    Returns:
        The parsed object

    Raises:
        ResponseParseError: If the reply is empty or holds no JSON object
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty response from model")

    stripped = text.strip()

    # Fast path: the whole reply is the object
    try:
        parsed = json.loads(stripped)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    start = stripped.find("{")
    while start != -1:
        candidate = _balanced_object(stripped, start)
        if candidate is not None:
            try:
                parsed = json.loads(candidate)
            except ValueError as e:
                logger.debug("Skipping unparseable JSON candidate at %d: %s", start, e)
            else:
                if isinstance(parsed, dict):
                    return parsed
        start = stripped.find("{", start + 1)

    raise ResponseParseError("No JSON object found in response")


def _balanced_object(text: str, start: int) -> Optional[str]:
    """Return the ``{...}`` span opening at *start*, or None if it never closes."""
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue
        if ch == "\\":
            if in_string:
                escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None

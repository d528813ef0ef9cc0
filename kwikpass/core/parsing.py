"""
Tolerant parser for blobs persisted in the key-value store

Older writers stored maps with their platform's default string form,
"{k=v, k=v}", instead of JSON. Both forms still exist on devices, so every
reader goes through parse_stored_blob:

    1. strict JSON object
    2. "{k=v, k=v}" split on top-level commas and the first "="
    3. empty mapping
"""
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}", "]"}


def _split_top_level(text: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and depth > 0:
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _parse_key_value_form(text: str) -> Optional[Dict[str, Any]]:
    body = text.strip()
    if body.startswith("{") and body.endswith("}"):
        body = body[1:-1]
    body = body.strip()
    if not body:
        return {}

    result: Dict[str, Any] = {}
    for part in _split_top_level(body):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip():
            return None
        value = value.strip()
        result[key.strip()] = None if value == "null" else value
    return result


def parse_stored_blob(blob: Optional[str]) -> Dict[str, Any]:
    """Parse a stored map blob, JSON first, then the "{k=v}" form"""
    if blob is None or not blob.strip():
        return {}

    try:
        parsed = json.loads(blob)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    fallback = _parse_key_value_form(blob)
    if fallback is not None:
        return fallback

    logger.debug("Unparseable stored blob of length %d", len(blob))
    return {}

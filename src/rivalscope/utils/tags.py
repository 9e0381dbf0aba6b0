"""Lenient JSON extraction from LLM output."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from rivalscope.logging import get_logger

logger = get_logger(__name__)

_FENCE_JSON = re.compile(r"```json\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)
_FENCE_ANY = re.compile(r"```\s*\n?(.*?)\n?```", re.DOTALL)


def _first_braced(text: str) -> Optional[str]:
    """Return the first balanced `{...}` span, honoring JSON string quoting."""

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        start = text.find("{", start + 1)
    return None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Extract a JSON object from model output.

    Tries, from strict to lenient: a fenced code block, the whole text, then the first balanced
    `{...}` span. Returns ``None`` instead of raising when nothing parses to an object.
    """

    if not text:
        return None

    cleaned = text.strip()
    candidates: list[str] = []
    m = _FENCE_JSON.search(cleaned) or _FENCE_ANY.search(cleaned)
    if m:
        candidates.append(m.group(1).strip())
    candidates.append(cleaned)
    braced = _first_braced(cleaned)
    if braced:
        candidates.append(braced)

    for candidate in candidates:
        if not (candidate.startswith("{") and candidate.endswith("}")):
            continue
        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj

    logger.debug("extract_json_object: no JSON object found")
    return None

"""Best-effort structured extraction from free-form model output.

Model replies are supposed to contain one JSON object, but they arrive
wrapped in code fences, prefixed with chatter, or not at all. Callers get a
typed ``Parsed`` or ``Unparsable`` instead of handling the string surgery.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Union


_FENCE_RE = re.compile(r"```json|```", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Parsed:
    value: Dict[str, Any]


@dataclass(frozen=True)
class Unparsable:
    reason: str
    raw: str = ""


Extraction = Union[Parsed, Unparsable]


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def extract_json(text: str) -> Extraction:
    cleaned = strip_code_fences(text)
    if not cleaned:
        return Unparsable("empty reply", text or "")
    match = _OBJECT_RE.search(cleaned)
    if not match:
        return Unparsable("no JSON object", cleaned)
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return Unparsable(f"malformed JSON: {e.msg}", cleaned)
    if not isinstance(value, dict):
        return Unparsable("JSON is not an object", cleaned)
    return Parsed(value)


def first_token(text: str, pattern: str) -> str | None:
    """First regex match in ``text`` (used for id-only model replies)."""
    m = re.search(pattern, strip_code_fences(text))
    return m.group(0) if m else None

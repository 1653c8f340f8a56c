"""Pull a JSON object out of free-form model output (code fences, leading prose, trailing text)."""
from __future__ import annotations

import json
import re
from typing import Any

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def _unfence(text: str) -> str:
    m = _FENCE.search(text)
    return m.group(1).strip() if m else text


def parse_json_object(raw: str | None) -> dict[str, Any] | None:
    """
    Return the single JSON object in `raw`, or None.

    A top-level array is rejected outright rather than mined for an embedded object:
    a list of candidates is not one answer.
    """
    if not raw or not raw.strip():
        return None
    text = _unfence(raw.strip())
    if text.startswith("["):
        return None
    if not text.startswith("{"):
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        text = text[start : end + 1]
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None

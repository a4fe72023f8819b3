"""Helpers for pulling structured data out of LLM replies."""

import json
from typing import Any, Dict, Optional


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the outermost {...} span of a reply.

    Returns None when there is no object or it does not parse.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def clip(text: Optional[str], max_chars: int) -> str:
    """Trim and clip prompt material, marking the cut."""
    trimmed = (text or "").strip()
    if len(trimmed) <= max_chars:
        return trimmed
    return trimmed[:max(0, max_chars - 20)] + "\n\n…(truncated)"

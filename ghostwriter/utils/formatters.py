"""
Small text helpers shared by prompt building and model-output parsing.
"""

import json
import re
from datetime import datetime
from typing import Any, Optional

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse a JSON object from model output.

    Tolerates a surrounding markdown code fence. Raises ValueError when the
    payload is not a JSON object.
    """
    if text is None:
        raise ValueError("empty response")
    stripped = text.strip()
    fenced = _CODE_FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1)
    if not stripped:
        raise ValueError("empty response")

    parsed = json.loads(stripped)  # json.JSONDecodeError is a ValueError
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def format_date(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%Y-%m-%d")


def to_display_text(content: Any) -> str:
    """Render free-text or JSON content as a single string."""
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, default=str)

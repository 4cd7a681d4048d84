"""
Post text cleaning.

Strips tracking URLs and normalizes whitespace. The transform is pure and
idempotent: clean_post_text(clean_post_text(x)) == clean_post_text(x).
"""

import re
from typing import Optional

# URLs carrying tracking parameters (utm_*, ref=, source=, medium=)
TRACKING_URL_PATTERN = re.compile(
    r"https?://[^\s]+[?&](?:utm_|ref=|source=|medium=)[^\s]*",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")


def clean_post_text(text: Optional[str]) -> Optional[str]:
    """Return the cleaned form of a raw post text, or None for missing text."""
    if text is None:
        return None
    cleaned = TRACKING_URL_PATTERN.sub("", text)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()

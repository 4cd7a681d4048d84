"""
Input validators.
"""

import re
from typing import Optional

from ghostwriter.core.exceptions import InvalidLinkedInUrlError

LINKEDIN_PROFILE_URL = re.compile(r"^https://(www\.)?linkedin\.com/in/[\w-]+/?$")


def validate_linkedin_url(url: Optional[str]) -> str:
    """
    Validate a LinkedIn profile URL and return it trimmed.

    Raises:
        InvalidLinkedInUrlError: if the URL is not https://(www.)linkedin.com/in/<handle>
    """
    if not url or not isinstance(url, str):
        raise InvalidLinkedInUrlError(url)
    candidate = url.strip()
    if not LINKEDIN_PROFILE_URL.match(candidate):
        raise InvalidLinkedInUrlError(url)
    return candidate


def sanitize_user_input(text: str, max_length: int = 10000) -> str:
    """Strip control characters and bound the length of chat input."""
    if not text:
        return ""
    text = text[:max_length]
    text = "".join(char for char in text if char.isprintable() or char in "\n\t")
    return text.strip()

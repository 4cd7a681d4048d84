"""Pydantic schemas for data crossing the core boundary"""

from ghostwriter.schemas.intent import Intent, IntentClassification
from ghostwriter.schemas.records import (
    ChatMessageRecord,
    MemoryEntry,
    PostRecord,
    ProfileRecord,
    ValidationResult,
)
from ghostwriter.schemas.style import (
    ConfidenceLevel,
    StyleJson,
    load_stored_style,
    parse_style_json,
)

__all__ = [
    "ChatMessageRecord",
    "ConfidenceLevel",
    "Intent",
    "IntentClassification",
    "MemoryEntry",
    "PostRecord",
    "ProfileRecord",
    "StyleJson",
    "ValidationResult",
    "load_stored_style",
    "parse_style_json",
]

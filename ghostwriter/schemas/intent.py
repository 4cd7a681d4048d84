"""
Intent classification contract.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Intent(str, Enum):
    """The four terminal intents. Closed set, never extended at runtime."""
    WRITE_POST = "WRITE_POST"
    ANALYZE_PROFILE = "ANALYZE_PROFILE"
    STRATEGY = "STRATEGY"
    OTHER = "OTHER"


class IntentClassification(BaseModel):
    """Classifier output after parsing and rule enforcement."""
    intent: Intent
    needs_clarification: bool = False
    missing_fields: list[str] = Field(default_factory=list)
    requires_rag: bool = False
    proposed_follow_ups: list[str] = Field(default_factory=list)

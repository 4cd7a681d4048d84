"""
Read-side records passed into the core.

These are detached from the ORM so the orchestrator, prompt builder and
analysis functions never touch a session. All accept ORM rows via
`model_validate(row)`.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ghostwriter.models.chat import MessageRole
from ghostwriter.models.memory import SummaryType


class PostRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: Optional[str] = None
    posted_at: Optional[datetime] = None
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    impressions_count: Optional[int] = None
    engagement_score: float = 0.0
    is_high_performing: bool = False
    topic_hint: Optional[str] = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


class ProfileRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    headline: Optional[str] = None
    about: Optional[str] = None
    location: Optional[str] = None
    experience_json: Optional[Any] = None


class MemoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    summary_type: SummaryType
    content: Any
    updated_at: Optional[datetime] = None


class ChatMessageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: MessageRole
    content: str
    created_at: Optional[datetime] = None


class ValidationResult(BaseModel):
    """Outcome of a fact-validation pass."""
    is_valid: bool
    unsupported_claims: list[str] = []

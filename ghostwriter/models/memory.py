"""
Long-term memory model - at most one row per user per summary type.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ghostwriter.core.database import Base, JSONType, utcnow


class SummaryType(str, Enum):
    PERSONA = "persona"
    GOALS = "goals"
    CONTENT_STRATEGY = "content_strategy"
    PAST_WINS = "past_wins"
    OTHER = "other"


class LongTermMemory(Base):
    __tablename__ = "long_term_memory"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    summary_type: Mapped[str] = mapped_column(String(32), nullable=False)
    # Free text or JSON
    content: Mapped[Any] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "summary_type", name="uq_long_term_memory_user_type"),
    )

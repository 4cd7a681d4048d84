"""
StyleProfile model - one per user, written only by analysis.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ghostwriter.core.database import Base, JSONType, utcnow


class StyleProfile(Base):
    """
    Derived writing-voice descriptor for a user.

    `style_json` holds the closed StyleJson shape; it is validated on the
    way in and again on every read.
    """

    __tablename__ = "style_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    style_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
    data_confidence_level: Mapped[str] = mapped_column(String(10), nullable=False)
    posts_analyzed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

"""
LinkedIn profile, post and post-embedding models.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ghostwriter.core.database import Base, JSONType, utcnow


class LinkedInProfile(Base):
    """The user's LinkedIn "about" card. One per user, upserted per ingestion run."""

    __tablename__ = "linkedin_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    headline: Mapped[Optional[str]] = mapped_column(String(512))
    about: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    experience_json: Mapped[Optional[Any]] = mapped_column(JSONType)
    raw_json: Mapped[Optional[dict]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class LinkedInPost(Base):
    """
    A single scraped post.

    `raw_text` is kept exactly as scraped; `text` is the cleaned form.
    Engagement score and high-performing flag are written by analysis
    over the complete post set.
    """

    __tablename__ = "linkedin_posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    raw_text: Mapped[Optional[str]] = mapped_column(Text)
    text: Mapped[Optional[str]] = mapped_column(Text)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    likes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shares_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    impressions_count: Mapped[Optional[int]] = mapped_column(Integer)
    engagement_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_high_performing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    topic_hint: Mapped[Optional[str]] = mapped_column(String(255))
    raw_json: Mapped[Optional[dict]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_linkedin_posts_user_score", "user_id", "engagement_score"),
    )


class PostEmbedding(Base):
    """Embedding vector for one post, with a fingerprint of the text it was built from."""

    __tablename__ = "post_embeddings"

    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("linkedin_posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    vector: Mapped[list] = mapped_column(JSONType, nullable=False)
    dimension: Mapped[int] = mapped_column(Integer, nullable=False)
    text_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

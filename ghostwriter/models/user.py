"""
User and onboarding models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ghostwriter.core.database import Base, JSONType, utcnow


class OnboardingStatus(str, Enum):
    """The five onboarding states. Closed set."""
    LINKEDIN_URL_PENDING = "linkedin_url_pending"
    SCRAPING_IN_PROGRESS = "scraping_in_progress"
    ANALYSIS_IN_PROGRESS = "analysis_in_progress"
    READY = "ready"
    ERROR = "error"


ALLOWED_TRANSITIONS: dict[OnboardingStatus, frozenset[OnboardingStatus]] = {
    OnboardingStatus.LINKEDIN_URL_PENDING: frozenset({OnboardingStatus.SCRAPING_IN_PROGRESS}),
    OnboardingStatus.SCRAPING_IN_PROGRESS: frozenset({
        OnboardingStatus.ANALYSIS_IN_PROGRESS,
        OnboardingStatus.ERROR,
    }),
    OnboardingStatus.ANALYSIS_IN_PROGRESS: frozenset({
        OnboardingStatus.READY,
        OnboardingStatus.ERROR,
    }),
    # Retry is only possible by resubmitting the URL
    OnboardingStatus.ERROR: frozenset({OnboardingStatus.SCRAPING_IN_PROGRESS}),
    # Re-ingest, or operator-triggered re-analysis of existing posts
    OnboardingStatus.READY: frozenset({
        OnboardingStatus.SCRAPING_IN_PROGRESS,
        OnboardingStatus.ANALYSIS_IN_PROGRESS,
    }),
}


def can_transition(current: OnboardingStatus, target: OnboardingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class User(Base):
    """Authenticated user. The id is the identity provider's subject."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    profile: Mapped["UserProfile"] = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id})>"


class UserProfile(Base):
    """Onboarding state and user-supplied settings."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    onboarding_status: Mapped[str] = mapped_column(
        String(32), default=OnboardingStatus.LINKEDIN_URL_PENDING.value, nullable=False
    )
    linkedin_url: Mapped[Optional[str]] = mapped_column(String(512))
    goals_json: Mapped[Optional[dict]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    user: Mapped[User] = relationship("User", back_populates="profile")

    @property
    def status(self) -> OnboardingStatus:
        return OnboardingStatus(self.onboarding_status)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "onboarding_status": self.onboarding_status,
            "linkedin_url": self.linkedin_url,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

"""
User Service.

Users, onboarding profiles and onboarding status transitions.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ghostwriter.core.database import Database
from ghostwriter.core.exceptions import NotFoundError, OnboardingStateError
from ghostwriter.models.user import OnboardingStatus, User, UserProfile, can_transition

logger = structlog.get_logger(__name__)


class UserService:
    """
    Service for users and their onboarding state.

    The onboarding_status column is the single arbiter of a user's stage.
    Writes are last-writer-wins; every write is checked against the
    allowed transition table.
    """

    def __init__(self, database: Database):
        self.database = database

    async def ensure_user(
        self,
        user_id: str,
        email: Optional[str] = None,
        db: Optional[AsyncSession] = None,
    ) -> UserProfile:
        """Get the user's profile, creating the user and a pending profile on first sight."""
        async def _ensure(session: AsyncSession) -> UserProfile:
            profile = await session.get(UserProfile, user_id)
            if profile is not None:
                return profile

            if await session.get(User, user_id) is None:
                session.add(User(id=user_id, email=email))
                await session.flush()

            profile = UserProfile(
                user_id=user_id,
                onboarding_status=OnboardingStatus.LINKEDIN_URL_PENDING.value,
            )
            session.add(profile)
            await session.commit()
            await session.refresh(profile)
            logger.info("User created", user_id=user_id)
            return profile

        if db:
            return await _ensure(db)

        async with self.database.session() as session:
            return await _ensure(session)

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        async with self.database.session() as session:
            return await session.get(UserProfile, user_id)

    async def get_status(self, user_id: str) -> OnboardingStatus:
        profile = await self.get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile not found: {user_id}")
        return profile.status

    async def transition(
        self,
        user_id: str,
        target: OnboardingStatus,
        linkedin_url: Optional[str] = None,
    ) -> UserProfile:
        """
        Move the user to a new onboarding status.

        Raises:
            NotFoundError: if the user has no profile
            OnboardingStateError: if the transition is not allowed
        """
        async with self.database.session() as session:
            stmt = select(UserProfile).where(UserProfile.user_id == user_id)
            profile = (await session.execute(stmt)).scalar_one_or_none()
            if profile is None:
                raise NotFoundError(f"User profile not found: {user_id}")

            current = profile.status
            if not can_transition(current, target):
                raise OnboardingStateError(current.value, target.value)

            profile.onboarding_status = target.value
            if linkedin_url is not None:
                profile.linkedin_url = linkedin_url
            await session.commit()
            await session.refresh(profile)

        logger.info(
            "Onboarding status changed",
            user_id=user_id,
            from_status=current.value,
            to_status=target.value,
        )
        return profile

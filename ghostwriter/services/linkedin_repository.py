"""
LinkedIn Repository.

Named accessors for a user's scraped profile and posts. Every query is
scoped by user_id.
"""

import uuid
from typing import Iterable, Optional, Sequence

import structlog
from sqlalchemy import delete, select

from ghostwriter.core.database import Database
from ghostwriter.models.linkedin import LinkedInPost, LinkedInProfile, PostEmbedding
from ghostwriter.schemas.records import PostRecord, ProfileRecord
from ghostwriter.services.analysis.engagement import PostScore
from ghostwriter.services.ingestion.schemas import ParsedPost, ParsedProfile

logger = structlog.get_logger(__name__)


class LinkedInRepository:
    """Persistence accessors for linkedin_profiles and linkedin_posts."""

    def __init__(self, database: Database):
        self.database = database

    async def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        async with self.database.session() as session:
            result = await session.execute(
                select(LinkedInProfile).where(LinkedInProfile.user_id == user_id)
            )
            profile = result.scalar_one_or_none()
            return ProfileRecord.model_validate(profile) if profile else None

    async def get_posts(self, user_id: str) -> list[PostRecord]:
        """All posts for the user, highest engagement first."""
        async with self.database.session() as session:
            result = await session.execute(
                select(LinkedInPost)
                .where(LinkedInPost.user_id == user_id)
                .order_by(LinkedInPost.engagement_score.desc(), LinkedInPost.id)
            )
            return [PostRecord.model_validate(post) for post in result.scalars().all()]

    async def get_posts_by_ids(self, user_id: str, post_ids: Sequence[str]) -> list[PostRecord]:
        """Posts in the order of `post_ids`; ids not owned by the user are dropped."""
        if not post_ids:
            return []
        async with self.database.session() as session:
            result = await session.execute(
                select(LinkedInPost).where(
                    LinkedInPost.user_id == user_id,
                    LinkedInPost.id.in_(list(post_ids)),
                )
            )
            by_id = {post.id: PostRecord.model_validate(post) for post in result.scalars().all()}
        return [by_id[post_id] for post_id in post_ids if post_id in by_id]

    async def get_high_performing_posts(self, user_id: str, limit: int) -> list[PostRecord]:
        async with self.database.session() as session:
            result = await session.execute(
                select(LinkedInPost)
                .where(LinkedInPost.user_id == user_id, LinkedInPost.is_high_performing.is_(True))
                .order_by(LinkedInPost.engagement_score.desc(), LinkedInPost.id)
                .limit(limit)
            )
            return [PostRecord.model_validate(post) for post in result.scalars().all()]

    async def replace_ingested_data(
        self,
        user_id: str,
        profile: Optional[ParsedProfile],
        posts: Iterable[ParsedPost],
    ) -> int:
        """
        Upsert the profile and replace all posts in one transaction.

        Existing posts and their embeddings are removed first.
        Returns the number of posts stored.
        """
        async with self.database.session() as session:
            if profile is not None:
                result = await session.execute(
                    select(LinkedInProfile).where(LinkedInProfile.user_id == user_id)
                )
                existing = result.scalar_one_or_none()
                if existing is None:
                    existing = LinkedInProfile(id=str(uuid.uuid4()), user_id=user_id)
                    session.add(existing)
                existing.headline = profile.headline
                existing.about = profile.about
                existing.location = profile.location
                existing.experience_json = profile.experience_json
                existing.raw_json = profile.raw_json

            await session.execute(delete(PostEmbedding).where(PostEmbedding.user_id == user_id))
            await session.execute(delete(LinkedInPost).where(LinkedInPost.user_id == user_id))

            stored = 0
            for post in posts:
                session.add(LinkedInPost(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    raw_text=post.raw_text,
                    text=post.text,
                    posted_at=post.posted_at,
                    likes_count=post.likes_count,
                    comments_count=post.comments_count,
                    shares_count=post.shares_count,
                    impressions_count=post.impressions_count,
                    topic_hint=post.topic_hint,
                    raw_json=post.raw_json,
                ))
                stored += 1

            await session.commit()

        logger.info("Ingested data stored", user_id=user_id, posts=stored, has_profile=profile is not None)
        return stored

    async def apply_engagement_scores(self, user_id: str, scores: Sequence[PostScore]) -> None:
        """Write scores and high-performing flags for the whole post set at once."""
        by_id = {score.post_id: score for score in scores}
        async with self.database.session() as session:
            result = await session.execute(
                select(LinkedInPost).where(LinkedInPost.user_id == user_id)
            )
            for post in result.scalars().all():
                score = by_id.get(post.id)
                if score is None:
                    continue
                post.engagement_score = score.engagement_score
                post.is_high_performing = score.is_high_performing
            await session.commit()

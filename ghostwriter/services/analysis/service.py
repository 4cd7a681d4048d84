"""
Analysis Service.

Runs once per onboarding cycle over the user's complete post set:

1. Score engagement and mark the high-performing slice
2. Refresh post embeddings whose text changed
3. Select candidate posts and extract the style profile
4. Store the style profile and move onboarding to `ready`
5. Seed initial memory in the background
"""

import hashlib
from typing import Optional, Sequence

import structlog

from ghostwriter.core.config import Settings
from ghostwriter.core.embeddings import EmbeddingService
from ghostwriter.core.exceptions import AnalysisError
from ghostwriter.core.tasks import BackgroundTaskRunner
from ghostwriter.core.vector_store import BasePostVectorIndex
from ghostwriter.models.user import OnboardingStatus
from ghostwriter.schemas.records import PostRecord
from ghostwriter.schemas.style import ConfidenceLevel
from ghostwriter.services.analysis.engagement import (
    EngagementWeights,
    apply_scores,
    score_posts,
    select_candidate_posts,
)
from ghostwriter.services.analysis.style_extractor import StyleExtractor
from ghostwriter.services.linkedin_repository import LinkedInRepository
from ghostwriter.services.memory_summarizer import MemorySummarizer
from ghostwriter.services.style_profile_service import StyleProfileService
from ghostwriter.services.user_service import UserService

logger = structlog.get_logger(__name__)


def text_fingerprint(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class AnalysisService:
    """Engagement scoring, embeddings and style extraction for one user."""

    def __init__(
        self,
        settings: Settings,
        repository: LinkedInRepository,
        vector_index: BasePostVectorIndex,
        embeddings: EmbeddingService,
        extractor: StyleExtractor,
        style_service: StyleProfileService,
        user_service: UserService,
        summarizer: MemorySummarizer,
        tasks: BackgroundTaskRunner,
    ):
        self.settings = settings
        self.repository = repository
        self.vector_index = vector_index
        self.embeddings = embeddings
        self.extractor = extractor
        self.style_service = style_service
        self.user_service = user_service
        self.summarizer = summarizer
        self.tasks = tasks
        self.weights = EngagementWeights(
            likes=settings.engagement_weight_likes,
            comments=settings.engagement_weight_comments,
            shares=settings.engagement_weight_shares,
            impressions=settings.engagement_weight_impressions,
        )

    async def run(self, user_id: str) -> ConfidenceLevel:
        """
        Analyze a user currently in `analysis_in_progress`.

        On success the user is `ready`. On any failure the user is moved to
        `error` once and the exception is re-raised.
        """
        try:
            confidence = await self._analyze(user_id)
        except Exception as e:
            logger.error("Analysis failed", user_id=user_id, error=str(e), error_type=type(e).__name__)
            await self.user_service.transition(user_id, OnboardingStatus.ERROR)
            raise

        await self.user_service.transition(user_id, OnboardingStatus.READY)
        return confidence

    async def reanalyze(self, user_id: str) -> ConfidenceLevel:
        """Re-run analysis for a user whose posts are already stored."""
        await self.user_service.transition(user_id, OnboardingStatus.ANALYSIS_IN_PROGRESS)
        return await self.run(user_id)

    async def _analyze(self, user_id: str) -> ConfidenceLevel:
        posts = await self.repository.get_posts(user_id)
        if not posts:
            raise AnalysisError("No posts found for analysis")

        scores = score_posts(posts, self.weights, self.settings.high_performing_fraction)
        await self.repository.apply_engagement_scores(user_id, scores)
        posts = apply_scores(posts, scores)

        await self.refresh_embeddings(user_id, posts)

        profile = await self.repository.get_profile(user_id)
        about = profile.about if profile else None

        candidates = select_candidate_posts(
            posts,
            limit=self.settings.style_candidate_limit,
            min_high_performing=self.settings.min_high_performing_for_style,
        )
        style, confidence = await self.extractor.extract(candidates, about)

        await self.style_service.upsert(user_id, style, confidence, posts_analyzed=len(candidates))

        self.tasks.spawn(
            "seed_initial_memory",
            self.summarizer.create_initial_memory(user_id, profile, posts, style),
            user_id=user_id,
        )

        logger.info(
            "Analysis completed",
            user_id=user_id,
            posts=len(posts),
            high_performing=sum(1 for score in scores if score.is_high_performing),
            confidence=confidence.value,
        )
        return confidence

    async def refresh_embeddings(self, user_id: str, posts: Sequence[PostRecord]) -> int:
        """
        Embed posts whose text has no current embedding.

        Posts without text are skipped. A failed embedding is logged and
        skipped. Returns the number of embeddings written.
        """
        existing = await self.vector_index.fingerprints(user_id)
        written = 0

        for post in posts:
            if not post.has_text:
                continue

            fingerprint = text_fingerprint(post.text)
            if existing.get(post.id) == fingerprint:
                continue

            vector: Optional[list[float]] = None
            try:
                vector = await self.embeddings.embed(post.text)
                await self.vector_index.upsert(user_id, post.id, vector, fingerprint)
                written += 1
            except Exception as e:
                logger.warning(
                    "Embedding failed for post",
                    user_id=user_id,
                    post_id=post.id,
                    error=str(e),
                    embedded=vector is not None,
                )

        logger.info("Embeddings refreshed", user_id=user_id, written=written, total=len(posts))
        return written

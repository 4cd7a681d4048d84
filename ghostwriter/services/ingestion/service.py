"""
LinkedIn ingestion service.

`ingest` validates the URL, moves the user to `scraping_in_progress` and
returns at once. The pipeline runs as a background task:

    profile job ─┐
                 ├─> store profile + posts ─> analysis_in_progress ─> analysis
    posts job  ──┘

If either job fails, nothing is stored for this cycle and the user moves
to `error`.
"""

import asyncio
from typing import Any

import structlog

from ghostwriter.core.exceptions import UpstreamServiceError
from ghostwriter.core.tasks import BackgroundTaskRunner
from ghostwriter.core.vector_store import BasePostVectorIndex
from ghostwriter.models.user import OnboardingStatus
from ghostwriter.services.analysis.service import AnalysisService
from ghostwriter.services.ingestion.apify_client import ApifyJobService
from ghostwriter.services.ingestion.schemas import (
    ActorKind,
    ParsedPost,
    ParsedProfile,
    parse_post_item,
    parse_profile_item,
)
from ghostwriter.services.linkedin_repository import LinkedInRepository
from ghostwriter.services.user_service import UserService
from ghostwriter.utils.validators import validate_linkedin_url

logger = structlog.get_logger(__name__)


class IngestionService:
    """Onboarding trigger and the background scrape-and-store pipeline."""

    def __init__(
        self,
        jobs: ApifyJobService,
        repository: LinkedInRepository,
        vector_index: BasePostVectorIndex,
        user_service: UserService,
        analysis: AnalysisService,
        tasks: BackgroundTaskRunner,
    ):
        self.jobs = jobs
        self.repository = repository
        self.vector_index = vector_index
        self.user_service = user_service
        self.analysis = analysis
        self.tasks = tasks

    async def ingest(self, user_id: str, linkedin_url: str) -> OnboardingStatus:
        """
        Start onboarding for a LinkedIn profile URL.

        Raises:
            InvalidLinkedInUrlError: before any state change or job trigger
            OnboardingStateError: if the user is already scraping or analysing
        """
        url = validate_linkedin_url(linkedin_url)

        await self.user_service.ensure_user(user_id)
        await self.user_service.transition(user_id, OnboardingStatus.SCRAPING_IN_PROGRESS, linkedin_url=url)

        self.tasks.spawn("linkedin_ingestion", self.run_pipeline(user_id, url), user_id=user_id)
        return OnboardingStatus.SCRAPING_IN_PROGRESS

    async def run_pipeline(self, user_id: str, linkedin_url: str) -> None:
        try:
            profile, posts = await self._scrape(linkedin_url)

            await self.vector_index.delete_user(user_id)
            stored = await self.repository.replace_ingested_data(user_id, profile, posts)
            await self.user_service.transition(user_id, OnboardingStatus.ANALYSIS_IN_PROGRESS)
        except Exception as e:
            logger.error("LinkedIn ingestion failed", user_id=user_id, error=str(e), error_type=type(e).__name__)
            await self.user_service.transition(user_id, OnboardingStatus.ERROR)
            raise

        logger.info("LinkedIn ingestion completed", user_id=user_id, posts=stored)

        # Analysis moves the user to ready or error itself
        await self.analysis.run(user_id)

    async def _scrape(self, linkedin_url: str) -> tuple[ParsedProfile, list[ParsedPost]]:
        """Run both actors concurrently. Any failure fails the whole step."""
        results: list[Any] = await asyncio.gather(
            self.jobs.run(ActorKind.PROFILE, linkedin_url),
            self.jobs.run(ActorKind.POSTS, linkedin_url),
            return_exceptions=True,
        )
        profile_records, post_records = results

        for kind, result in zip((ActorKind.PROFILE, ActorKind.POSTS), results):
            if isinstance(result, BaseException):
                logger.warning("Scrape job failed", kind=kind.value, error=str(result))
        for result in results:
            if isinstance(result, BaseException):
                raise result

        if not profile_records:
            raise UpstreamServiceError("apify", "Profile actor returned no data")

        profile = parse_profile_item(profile_records[0])
        posts = [parse_post_item(record) for record in post_records]
        return profile, posts

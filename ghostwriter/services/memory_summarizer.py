"""
Memory Summarizer.

Builds the long-term memory summaries (persona, goals, content strategy,
past wins) with grounded prompts. Summaries are best-effort: callers that
run them in the background never see their failures.
"""

import asyncio
from typing import Optional, Sequence

import structlog
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from ghostwriter.core.config import Settings
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.models.chat import MessageRole
from ghostwriter.models.memory import SummaryType
from ghostwriter.schemas.records import ChatMessageRecord, PostRecord, ProfileRecord
from ghostwriter.schemas.style import StyleJson
from ghostwriter.services.linkedin_repository import LinkedInRepository
from ghostwriter.services.memory_service import MemoryService
from ghostwriter.services.style_profile_service import StyleProfileService
from ghostwriter.utils.prompts import PromptContractBuilder

logger = structlog.get_logger(__name__)


PERSONA_INSTRUCTIONS = """Based on the FACTS provided, create a concise persona summary (2-3 paragraphs) that captures:
- Professional identity and background (from LinkedIn profile and posts)
- Key values and communication style (from posts and chat messages)
- Notable characteristics or patterns (from writing style and content)

CRITICAL: Use only information from FACTS. Do not invent facts. If information is missing, state that clearly or create a minimal summary."""

GOALS_INSTRUCTIONS = """Based on the FACTS provided, extract and summarize the user's goals (1-2 paragraphs). Look for:
- Career objectives (from LinkedIn profile or chat messages)
- Content goals (from chat messages)
- Professional aspirations (from profile or messages)
- What they want to achieve on LinkedIn (from messages)

CRITICAL: Use only information from FACTS. If no goals are mentioned, create a minimal summary noting that goals will be clarified through conversation. Never invent goals."""

CONTENT_STRATEGY_INSTRUCTIONS = """Based on the FACTS provided, create or update a content strategy summary (2-3 paragraphs) that includes:
- Effective content themes (from high-performing posts and favorite topics)
- What types of posts perform well (from engagement data in FACTS)
- Recommended posting approaches (from style patterns and successful posts)
- Topics that resonate with the audience (from favorite topics and high-performing content)

CRITICAL: Use only information from FACTS. Do not invent strategies. If data is insufficient, note limitations."""

PAST_WINS_INSTRUCTIONS = """Based on the FACTS provided, create or update a past wins summary (1-2 paragraphs) that highlights:
- Successful posts and their performance (from high-performing posts with engagement scores)
- What made them successful (from engagement metrics and content analysis)
- Patterns in high-performing content (from style and topic analysis)

CRITICAL: Use only information from FACTS. Do not invent wins. If no wins are available, note that clearly."""

SYSTEM_PROMPTS = {
    SummaryType.PERSONA: "You are a persona summarizer. Create summaries based only on verified facts. Never hallucinate.",
    SummaryType.GOALS: "You are a goals extractor. Extract goals based only on verified facts. Never hallucinate.",
    SummaryType.CONTENT_STRATEGY: (
        "You are a content strategy advisor. Create strategies based only on verified facts. Never hallucinate."
    ),
    SummaryType.PAST_WINS: "You are a wins tracker. Document wins based only on verified facts. Never hallucinate.",
}

STRATEGY_KEYWORDS = ("strategy", "theme", "topic")
WIN_KEYWORDS = ("win", "success", "achievement")


def _high_performing(posts: Sequence[PostRecord], limit: int) -> list[PostRecord]:
    ranked = sorted(
        (post for post in posts if post.is_high_performing),
        key=lambda post: post.engagement_score,
        reverse=True,
    )
    return ranked[:limit]


def _user_messages_mentioning(
    messages: Sequence[ChatMessageRecord],
    keywords: Sequence[str],
) -> list[ChatMessageRecord]:
    """User messages containing any keyword; all messages when none match."""
    matching = [
        message for message in messages
        if message.role == MessageRole.USER
        and any(keyword in message.content.lower() for keyword in keywords)
    ]
    return matching or list(messages)


class MemorySummarizer:
    """Generates and stores long-term memory summaries for a user."""

    def __init__(
        self,
        llm: LLMClient,
        settings: Settings,
        memory_service: MemoryService,
        repository: LinkedInRepository,
        style_service: StyleProfileService,
    ):
        self.llm = llm
        self.settings = settings
        self.memory_service = memory_service
        self.repository = repository
        self.style_service = style_service

    async def _summarize(
        self,
        user_id: str,
        summary_type: SummaryType,
        prompt: str,
    ) -> Optional[str]:
        summary = await self.llm.complete(
            prompt,
            system_prompt=SYSTEM_PROMPTS[summary_type],
            temperature=self.settings.memory_temperature,
        )
        summary = summary.strip()
        if not summary:
            logger.warning("Empty memory summary", user_id=user_id, summary_type=summary_type.value)
            return None

        await self.memory_service.upsert_memory(user_id, summary_type, summary)
        return summary

    async def generate_persona_summary(
        self,
        user_id: str,
        profile: Optional[ProfileRecord],
        posts: Sequence[PostRecord],
        chat_messages: Sequence[ChatMessageRecord],
        style: Optional[StyleJson],
    ) -> Optional[str]:
        prompt = PromptContractBuilder.build_complete_prompt(
            style,
            _high_performing(posts, 5),
            profile,
            [],
            chat_messages,
            PERSONA_INSTRUCTIONS,
            self.settings.facts_history_window,
        )
        return await self._summarize(user_id, SummaryType.PERSONA, prompt)

    async def generate_goals_summary(
        self,
        user_id: str,
        profile: Optional[ProfileRecord],
        chat_messages: Sequence[ChatMessageRecord],
    ) -> Optional[str]:
        prompt = PromptContractBuilder.build_complete_prompt(
            None,
            [],
            profile,
            [],
            chat_messages,
            GOALS_INSTRUCTIONS,
            self.settings.facts_history_window,
        )
        return await self._summarize(user_id, SummaryType.GOALS, prompt)

    async def update_content_strategy(
        self,
        user_id: str,
        posts: Sequence[PostRecord],
        style: Optional[StyleJson],
        chat_messages: Sequence[ChatMessageRecord],
    ) -> Optional[str]:
        prompt = PromptContractBuilder.build_complete_prompt(
            style,
            _high_performing(posts, 10),
            None,
            [],
            _user_messages_mentioning(chat_messages, STRATEGY_KEYWORDS),
            CONTENT_STRATEGY_INSTRUCTIONS,
            self.settings.facts_history_window,
        )
        return await self._summarize(user_id, SummaryType.CONTENT_STRATEGY, prompt)

    async def update_past_wins(
        self,
        user_id: str,
        posts: Sequence[PostRecord],
        chat_messages: Sequence[ChatMessageRecord],
    ) -> Optional[str]:
        prompt = PromptContractBuilder.build_complete_prompt(
            None,
            _high_performing(posts, 10),
            None,
            [],
            _user_messages_mentioning(chat_messages, WIN_KEYWORDS),
            PAST_WINS_INSTRUCTIONS,
            self.settings.facts_history_window,
        )
        return await self._summarize(user_id, SummaryType.PAST_WINS, prompt)

    async def _with_retry(self, user_id: str, summary_type: SummaryType, make_call) -> None:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.settings.memory_seed_max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=5),
                reraise=True,
            ):
                with attempt:
                    await make_call()
        except Exception as e:
            logger.error(
                "Memory summary failed",
                user_id=user_id,
                summary_type=summary_type.value,
                error=str(e),
            )

    async def create_initial_memory(
        self,
        user_id: str,
        profile: Optional[ProfileRecord],
        posts: Sequence[PostRecord],
        style: Optional[StyleJson],
    ) -> None:
        """
        Seed persona and goals after onboarding.

        The two summaries run concurrently and retry independently; a failed
        summary is logged and does not affect the other.
        """
        await asyncio.gather(
            self._with_retry(
                user_id,
                SummaryType.PERSONA,
                lambda: self.generate_persona_summary(user_id, profile, posts, [], style),
            ),
            self._with_retry(
                user_id,
                SummaryType.GOALS,
                lambda: self.generate_goals_summary(user_id, profile, []),
            ),
        )
        logger.info("Initial memory seeded", user_id=user_id)

    async def update_memory_after_interaction(
        self,
        user_id: str,
        chat_messages: Sequence[ChatMessageRecord],
    ) -> None:
        """Refresh content strategy and past wins. Never raises."""
        try:
            posts = await self.repository.get_posts(user_id)
            if (
                len(posts) < self.settings.memory_update_min_posts
                and len(chat_messages) < self.settings.memory_update_min_messages
            ):
                logger.debug("Memory update skipped", user_id=user_id, posts=len(posts))
                return

            style = await self.style_service.get_style(user_id)
            await asyncio.gather(
                self.update_content_strategy(user_id, posts, style, chat_messages),
                self.update_past_wins(user_id, posts, chat_messages),
            )
            logger.info("Memory updated after interaction", user_id=user_id)
        except Exception as e:
            logger.error("Error updating memory after interaction", user_id=user_id, error=str(e))

"""
Grounding Loader Node.

Loads the extra facts each intent is grounded in:

- WRITE_POST, ANALYZE_PROFILE: the scraped LinkedIn profile
- STRATEGY: the user's high-performing posts, merged after retrieved posts
"""

import time

import structlog

from ghostwriter.agents.grounded_chat.state import GroundedChatState, add_execution_trace
from ghostwriter.core.config import Settings
from ghostwriter.schemas.intent import Intent
from ghostwriter.services.linkedin_repository import LinkedInRepository

logger = structlog.get_logger(__name__)


class GroundingLoaderNode:

    def __init__(self, repository: LinkedInRepository, settings: Settings):
        self.repository = repository
        self.settings = settings

    async def __call__(self, state: GroundedChatState) -> GroundedChatState:
        start_time = time.time()
        state["current_node"] = "grounding_loader"

        intent = state["classification"].intent
        user_id = state["user_id"]

        if intent in (Intent.WRITE_POST, Intent.ANALYZE_PROFILE):
            state["profile"] = await self.repository.get_profile(user_id)

        if intent == Intent.STRATEGY:
            high_performing = await self.repository.get_high_performing_posts(
                user_id, self.settings.strategy_high_performing_limit
            )
            merged = list(state.get("rag_posts") or [])
            seen = {post.id for post in merged}
            merged.extend(post for post in high_performing if post.id not in seen)
            state["rag_posts"] = merged

        add_execution_trace(
            state,
            "grounding_loader",
            "completed",
            int((time.time() - start_time) * 1000),
            metadata={"has_profile": state.get("profile") is not None, "posts": len(state.get("rag_posts") or [])},
        )
        return state

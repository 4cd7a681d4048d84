"""
Generation Node.

Produces the per-intent response through the prompt contract and decides
whether the draft needs the fact-validation pass.
"""

import time
from typing import Optional

import structlog

from ghostwriter.agents.grounded_chat.state import GroundedChatState, add_execution_trace
from ghostwriter.core.config import Settings
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.schemas.intent import Intent, IntentClassification
from ghostwriter.schemas.style import StyleJson
from ghostwriter.services.fact_validator import is_sensitive
from ghostwriter.utils.prompts import PromptContractBuilder

logger = structlog.get_logger(__name__)


SYSTEM_PROMPTS = {
    "clarify": "You are a helpful assistant that asks clarifying questions. Be concise and friendly.",
    Intent.WRITE_POST: (
        "You are a LinkedIn content assistant. Generate posts that match the user's style "
        "while using only verified facts. Never hallucinate."
    ),
    Intent.ANALYZE_PROFILE: (
        "You are a LinkedIn profile analyst. Provide analysis based only on verified facts. Never hallucinate."
    ),
    Intent.STRATEGY: (
        "You are a content strategy advisor. Provide strategy based only on verified facts. Never hallucinate."
    ),
    Intent.OTHER: "You are a helpful assistant. Be professional and never invent facts.",
}

FALLBACK_RESPONSES = {
    "clarify": "Could you provide more details about what you'd like to write about?",
    Intent.WRITE_POST: "I apologize, but I couldn't generate a response. Please try again.",
    Intent.ANALYZE_PROFILE: "I apologize, but I couldn't analyze your profile. Please try again.",
    Intent.STRATEGY: "I apologize, but I couldn't generate a strategy. Please try again.",
    Intent.OTHER: "I apologize, but I couldn't process your request. Please try again.",
}

ANALYSIS_STYLE_BLOCK = "STYLE BLOCK:\nNot applicable - this is a profile analysis, not written in the user's voice."

CLARIFY_INSTRUCTIONS = """The user wants to write a LinkedIn post but needs clarification.

User request: {user_message}
Missing fields: {missing_fields}
Proposed follow-ups: {follow_ups}

Generate a concise, friendly clarifying question (1-2 sentences max) asking for the missing information.
Do not write the post yet."""

WRITE_POST_INSTRUCTIONS = """User wants to write a LinkedIn post.
User request: {user_message}

Generate a LinkedIn post draft with three clear sections:
1. Hook - Opening that grabs attention
2. Body - Main content
3. CTA - Call to action

Use the STYLE block to match the user's writing voice.
Use only information from the FACTS block - never invent facts.
If information is missing, ask the user or use generic statements."""

ANALYZE_PROFILE_INSTRUCTIONS = """Analyze the user's LinkedIn profile and posts.
User request: {user_message}

Based ONLY on the FACTS provided, produce:
1. Strengths - What's working well
2. Weaknesses - Areas for improvement
3. What to improve - Specific actionable recommendations

If information is missing, state that clearly."""

STRATEGY_INSTRUCTIONS = """Generate a content strategy for the user.
User request: {user_message}

Use:
- Favorite topics: {favorite_topics}
- High-performing posts (if available)
- User goals from memory

Generate:
1. Themes - 3-5 content themes
2. Post ideas - 3-5 post ideas per theme

Only use information from FACTS. If data is insufficient, state limitations clearly."""

OTHER_INSTRUCTIONS = """User message: {user_message}

Provide a helpful response. If you need more information, ask clarifying questions."""


def _favorite_topics(style: Optional[StyleJson]) -> str:
    if style is None or not style.favorite_topics:
        return "general professional topics"
    return ", ".join(style.favorite_topics)


class GenerationNode:
    """Per-intent generation through the prompt contract."""

    def __init__(self, llm: LLMClient, settings: Settings):
        self.llm = llm
        self.settings = settings

    async def __call__(self, state: GroundedChatState) -> GroundedChatState:
        start_time = time.time()
        state["current_node"] = "generator"

        classification: IntentClassification = state["classification"]
        intent = classification.intent
        message = state["user_message"]
        style = state.get("style_profile")
        history_window = self.settings.facts_history_window
        conversation = ""

        if intent == Intent.WRITE_POST and classification.needs_clarification:
            key = "clarify"
            style_block = PromptContractBuilder.build_style_block(style)
            facts_block = PromptContractBuilder.build_facts_block(
                chat_history=state.get("chat_history"), history_window=history_window
            )
            conversation = PromptContractBuilder.build_conversation_context(
                state.get("chat_history"), history_window
            )
            instructions = CLARIFY_INSTRUCTIONS.format(
                user_message=message,
                missing_fields=", ".join(classification.missing_fields) or "none listed",
                follow_ups=" ".join(classification.proposed_follow_ups) or "none",
            )
            temperature = self.settings.write_post_temperature

        elif intent == Intent.WRITE_POST:
            key = intent
            style_block = PromptContractBuilder.build_style_block(style)
            facts_block = PromptContractBuilder.build_facts_block(
                state.get("rag_posts"),
                state.get("profile"),
                state.get("memory"),
                state.get("chat_history"),
                history_window,
            )
            conversation = PromptContractBuilder.build_conversation_context(
                state.get("chat_history"), history_window
            )
            instructions = WRITE_POST_INSTRUCTIONS.format(user_message=message)
            temperature = self.settings.write_post_temperature

        elif intent == Intent.ANALYZE_PROFILE:
            key = intent
            style_block = ANALYSIS_STYLE_BLOCK
            facts_block = PromptContractBuilder.build_facts_block(state.get("rag_posts"), state.get("profile"))
            instructions = ANALYZE_PROFILE_INSTRUCTIONS.format(user_message=message)
            temperature = self.settings.analyze_temperature

        elif intent == Intent.STRATEGY:
            key = intent
            style_block = PromptContractBuilder.build_style_block(style)
            facts_block = PromptContractBuilder.build_facts_block(
                state.get("rag_posts"), None, state.get("memory")
            )
            instructions = STRATEGY_INSTRUCTIONS.format(
                user_message=message,
                favorite_topics=_favorite_topics(style),
            )
            temperature = self.settings.strategy_temperature

        else:
            key = Intent.OTHER
            style_block = PromptContractBuilder.build_style_block(style)
            facts_block = PromptContractBuilder.build_facts_block(memory=state.get("memory"))
            instructions = OTHER_INSTRUCTIONS.format(user_message=message)
            temperature = self.settings.other_temperature

        prompt = PromptContractBuilder.build_prompt_from_blocks(style_block, facts_block, instructions, conversation)
        content = await self.llm.complete(
            prompt,
            system_prompt=SYSTEM_PROMPTS[key],
            temperature=temperature,
        )
        draft = content.strip() if content and content.strip() else FALLBACK_RESPONSES[key]

        state["style_block"] = style_block
        state["facts_block"] = facts_block
        state["draft"] = draft
        state["response_text"] = draft

        if key == Intent.ANALYZE_PROFILE:
            state["needs_validation"] = True
        elif key == Intent.WRITE_POST:
            state["needs_validation"] = is_sensitive(message, draft)
        else:
            state["needs_validation"] = False

        add_execution_trace(
            state,
            "generator",
            "completed",
            int((time.time() - start_time) * 1000),
            metadata={"mode": "clarify" if key == "clarify" else intent.value},
        )
        logger.info(
            "Response generated",
            intent=intent.value,
            clarification=key == "clarify",
            needs_validation=state["needs_validation"],
        )
        return state

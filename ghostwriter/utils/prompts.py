"""
Prompt contract builder.

Every grounded LLM call is assembled here and nowhere else:

    STYLE BLOCK   - how to write (voice only, never facts)
    FACTS BLOCK   - what is true (posts, profile, memory, the user's own chat turns)
    INSTRUCTIONS  - the task, after the recent conversation as context
    SAFETY RULES  - fixed directives, always last

Inputs that fail validation are treated as absent, never as errors.
"""

from typing import Any, Optional, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from ghostwriter.models.chat import MessageRole
from ghostwriter.schemas.records import ChatMessageRecord, MemoryEntry, PostRecord, ProfileRecord
from ghostwriter.schemas.style import StyleJson, load_stored_style
from ghostwriter.utils.formatters import format_date, to_display_text

ModelT = TypeVar("ModelT", bound=BaseModel)

NO_FACTS_MARKER = "No verified data available."

SAFETY_RULES = """SAFETY RULES (MANDATORY - MUST FOLLOW):

1. NEVER invent biographical facts, roles, achievements, years, or personal details.
2. NEVER assume information not explicitly stated in FACTS.
3. If data is missing → ask a question to the user.
4. STYLE only controls VOICE (how to write), not CONTENT (what to write).
5. FACTS override STYLE - truth always comes before voice matching.
6. If FACTS are insufficient → produce generic statements or ask the user.
7. Do NOT infer identity details from tone or writing style.
8. Avoid confident assertions without grounding in FACTS.
9. When in doubt, ask the user rather than guessing.
10. If you cannot verify a claim from FACTS, do not include it."""

FACTS_RULES = """CRITICAL RULES FOR USING FACTS:
1. Only use information explicitly stated in FACTS above.
2. Never invent biographical facts, roles, achievements, years, or personal details.
3. Never assume or infer information not present in FACTS.
4. If information is missing, ask the user a question or state that the information is not available.
5. FACTS override STYLE - truth always comes before voice.
6. Do not infer identity details from tone or style patterns."""


def _coerce(model: type[ModelT], value: Any) -> Optional[ModelT]:
    if value is None:
        return None
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError:
        return None


def _coerce_many(model: type[ModelT], values: Optional[Sequence[Any]]) -> list[ModelT]:
    if not values:
        return []
    coerced = (_coerce(model, value) for value in values)
    return [item for item in coerced if item is not None]


def _recent(chat_history: Optional[Sequence[Any]], history_window: int) -> list[ChatMessageRecord]:
    if history_window <= 0:
        return []
    return _coerce_many(ChatMessageRecord, chat_history)[-history_window:]


class PromptContractBuilder:
    """Renders STYLE / FACTS / INSTRUCTIONS / SAFETY prompt sections."""

    @staticmethod
    def build_style_block(style_profile: Any) -> str:
        """Render voice attributes only. Accepts StyleJson, a dict, or None."""
        style = style_profile if isinstance(style_profile, StyleJson) else load_stored_style(style_profile)

        if style is None:
            return (
                "STYLE BLOCK:\n"
                "No style profile available. Use a professional, clear writing style.\n\n"
                "IMPORTANT: STYLE only controls HOW to write (voice, tone, structure), "
                "NOT WHAT to write (content, facts)."
            )

        phrases = "\n".join(f"- {phrase}" for phrase in style.common_phrases_or_cadence_examples)
        return (
            "STYLE BLOCK:\n"
            f"Tone: {style.tone}\n"
            f"Formality Level: {style.formality_level}/10\n"
            f"Average Length: {style.average_length_words:g} words\n"
            f"Emoji Usage: {style.emoji_usage}\n"
            f"Structure Patterns: {', '.join(style.structure_patterns)}\n"
            f"Hook Patterns: {', '.join(style.hook_patterns)}\n"
            f"Hashtag Style: {style.hashtag_style}\n"
            f"Favorite Topics: {', '.join(style.favorite_topics)}\n"
            "Common Phrases/Cadence Examples:\n"
            f"{phrases}\n"
            f"Paragraph Density: {style.paragraph_density}\n\n"
            "CRITICAL: STYLE only controls HOW to write (voice, tone, structure, cadence), "
            "NOT WHAT to write (content, facts, biographical details). STYLE does not override FACTS."
        )

    @staticmethod
    def build_facts_block(
        rag_posts: Optional[Sequence[Any]] = None,
        profile: Any = None,
        memory: Optional[Sequence[Any]] = None,
        chat_history: Optional[Sequence[Any]] = None,
        history_window: int = 10,
    ) -> str:
        """
        Render grounding facts in a named, attributable format.

        Only the user's own turns from the recent chat window are carried;
        assistant replies are never facts. User turns alone do not count as
        grounding data, so the no-data framing still applies.
        """
        posts = [post for post in _coerce_many(PostRecord, rag_posts) if post.has_text]
        profile_record = _coerce(ProfileRecord, profile)
        memory_entries = _coerce_many(MemoryEntry, memory)
        user_turns = [
            message
            for message in _recent(chat_history, history_window)
            if message.role == MessageRole.USER and message.content.strip()
        ]

        facts: list[str] = []

        if posts:
            facts.append("RELEVANT POSTS FROM USER'S LINKEDIN:")
            for idx, post in enumerate(posts, 1):
                facts.append(f"Post {idx}: {post.text}")
                posted = format_date(post.posted_at)
                if posted:
                    facts.append(f"Posted: {posted}")
                if post.is_high_performing:
                    facts.append(
                        f"Performance: High-performing ({post.engagement_score:.1f} engagement score)"
                    )

        if profile_record is not None:
            profile_lines = []
            if profile_record.headline:
                profile_lines.append(f"Headline: {profile_record.headline}")
            if profile_record.about:
                profile_lines.append(f"About: {profile_record.about}")
            if profile_record.location:
                profile_lines.append(f"Location: {profile_record.location}")
            if profile_record.experience_json:
                profile_lines.append(f"Experience: {to_display_text(profile_record.experience_json)}")
            if profile_lines:
                facts.append("\nLINKEDIN PROFILE:")
                facts.extend(profile_lines)

        if memory_entries:
            facts.append("\nLONG-TERM MEMORY:")
            for entry in memory_entries:
                facts.append(f"{entry.summary_type.value}: {to_display_text(entry.content)}")

        user_statements = []
        if user_turns:
            user_statements.append("USER STATEMENTS IN THIS CHAT:")
            user_statements.extend(f"User said: {message.content}" for message in user_turns)

        if not facts:
            block = (
                "FACTS BLOCK:\n"
                f"{NO_FACTS_MARKER}\n\n"
                "CRITICAL: Since no FACTS are available, you must ask the user for information "
                "or produce generic statements. Never invent facts."
            )
            if user_statements:
                block += "\n\n" + "\n".join(user_statements)
            return block

        if user_statements:
            facts.append("")
            facts.extend(user_statements)

        body = "\n".join(facts).lstrip("\n")
        return f"FACTS BLOCK:\n{body}\n\n{FACTS_RULES}"

    @staticmethod
    def build_conversation_context(chat_history: Optional[Sequence[Any]], history_window: int = 10) -> str:
        """Recent turns of both roles, rendered as context for the task. Never facts."""
        recent = _recent(chat_history, history_window)
        if not recent:
            return ""
        lines = [f"{message.role.value}: {message.content}" for message in recent]
        return (
            "RECENT CONVERSATION (context only; assistant replies are NOT facts and "
            "must not be used to support claims):\n" + "\n".join(lines)
        )

    @staticmethod
    def build_style_source_facts_block(post_texts: Sequence[str], about: Optional[str]) -> str:
        """FACTS block for style extraction: the raw material the voice is derived from."""
        sections: list[str] = []
        if about and about.strip():
            sections.append(f"PROFILE ABOUT SECTION:\n{about.strip()}")
        if post_texts:
            sections.append("LINKEDIN POSTS:")
            sections.extend(f"Post {idx}:\n{text}" for idx, text in enumerate(post_texts, 1))

        if not sections:
            return f"FACTS BLOCK:\n{NO_FACTS_MARKER}"

        return (
            "FACTS BLOCK:\n"
            + "\n\n---\n\n".join(sections)
            + "\n\nCRITICAL: Only analyze style patterns from the provided posts. "
            "Do not invent facts about the user."
        )

    @staticmethod
    def build_safety_rules() -> str:
        return SAFETY_RULES

    @staticmethod
    def build_prompt_from_blocks(
        style_block: str,
        facts_block: str,
        instructions: str,
        conversation: str = "",
    ) -> str:
        """
        Join pre-rendered blocks in contract order. Safety rules always terminate the prompt.

        Recent conversation, when given, opens the INSTRUCTIONS block so it is
        never read as part of FACTS.
        """
        task = instructions.strip()
        if conversation:
            task = f"{conversation.strip()}\n\n{task}"
        return (
            f"{style_block}\n\n"
            f"{facts_block}\n\n"
            f"INSTRUCTIONS BLOCK:\n{task}\n\n"
            f"{SAFETY_RULES}"
        )

    @classmethod
    def build_complete_prompt(
        cls,
        style_profile: Any,
        rag_posts: Optional[Sequence[Any]],
        profile: Any,
        memory: Optional[Sequence[Any]],
        chat_history: Optional[Sequence[Any]],
        instructions: str,
        history_window: int = 10,
    ) -> str:
        return cls.build_prompt_from_blocks(
            cls.build_style_block(style_profile),
            cls.build_facts_block(rag_posts, profile, memory, chat_history, history_window),
            instructions,
            cls.build_conversation_context(chat_history, history_window),
        )

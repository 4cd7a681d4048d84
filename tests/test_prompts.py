"""
Prompt contract builder tests.
"""

from datetime import datetime, timezone

from ghostwriter.models.memory import SummaryType
from ghostwriter.schemas.records import ChatMessageRecord, MemoryEntry, ProfileRecord
from ghostwriter.schemas.style import StyleJson
from ghostwriter.utils.prompts import NO_FACTS_MARKER, SAFETY_RULES, PromptContractBuilder
from tests.conftest import STYLE_RESPONSE, make_post


def test_block_order_and_safety_rules_last():
    prompt = PromptContractBuilder.build_complete_prompt(
        STYLE_RESPONSE, [], None, [], [], "Write something."
    )

    style_at = prompt.index("STYLE BLOCK:")
    facts_at = prompt.index("FACTS BLOCK:")
    instructions_at = prompt.index("INSTRUCTIONS BLOCK:")
    assert style_at < facts_at < instructions_at
    assert prompt.endswith(SAFETY_RULES)


def test_style_block_carries_voice_only():
    block = PromptContractBuilder.build_style_block(StyleJson.model_validate(STYLE_RESPONSE))

    assert "Tone: conversational" in block
    assert "Formality Level: 4/10" in block
    assert "Average Length: 120 words" in block
    assert "- Let that sink in." in block
    assert "NOT WHAT to write" in block


def test_invalid_style_falls_back_to_default_block():
    block = PromptContractBuilder.build_style_block({"tone": "shouty"})
    assert "No style profile available" in block


def test_empty_facts_use_no_data_framing():
    block = PromptContractBuilder.build_facts_block([], None, [], [])
    assert NO_FACTS_MARKER in block
    assert "Never invent facts" in block


def test_posts_without_text_are_not_facts():
    block = PromptContractBuilder.build_facts_block([make_post("p1", text="   ")])
    assert NO_FACTS_MARKER in block


def test_facts_block_sections():
    posts = [
        make_post(
            "p1",
            text="We shipped the new billing system.",
            posted_at=datetime(2024, 3, 5, tzinfo=timezone.utc),
            is_high_performing=True,
            engagement_score=42.0,
        )
    ]
    profile = ProfileRecord(headline="Staff Engineer", about="Payments nerd.", location="Lisbon")
    memory = [MemoryEntry(summary_type=SummaryType.GOALS, content="Grow an audience of CTOs")]
    history = [
        ChatMessageRecord(role="user", content=f"message {i}") for i in range(15)
    ]

    block = PromptContractBuilder.build_facts_block(posts, profile, memory, history, history_window=3)

    assert "Post 1: We shipped the new billing system." in block
    assert "Posted: 2024-03-05" in block
    assert "High-performing (42.0 engagement score)" in block
    assert "Headline: Staff Engineer" in block
    assert "goals: Grow an audience of CTOs" in block
    assert "User said: message 14" in block
    assert "User said: message 11" not in block
    assert NO_FACTS_MARKER not in block


def test_assistant_replies_are_never_facts():
    history = [
        ChatMessageRecord(role="user", content="I run a design studio."),
        ChatMessageRecord(role="assistant", content="You have led teams at Google for 10 years."),
    ]

    block = PromptContractBuilder.build_facts_block(chat_history=history)

    assert "Google" not in block
    assert "User said: I run a design studio." in block
    assert NO_FACTS_MARKER in block


def test_conversation_opens_instructions_block():
    history = [
        ChatMessageRecord(role="user", content="Help me with a post"),
        ChatMessageRecord(role="assistant", content="What topic should it cover?"),
    ]

    prompt = PromptContractBuilder.build_complete_prompt(None, [], None, [], history, "Write the post.")

    facts, instructions = prompt.split("INSTRUCTIONS BLOCK:", 1)
    assert "What topic should it cover?" not in facts
    assert "assistant: What topic should it cover?" in instructions
    assert instructions.index("RECENT CONVERSATION") < instructions.index("Write the post.")
    assert prompt.endswith(SAFETY_RULES)

    assert PromptContractBuilder.build_conversation_context(history, history_window=0) == ""


def test_style_source_facts_block():
    block = PromptContractBuilder.build_style_source_facts_block(["First post", "Second post"], "About text")
    assert block.startswith("FACTS BLOCK:")
    assert "PROFILE ABOUT SECTION:\nAbout text" in block
    assert "Post 2:\nSecond post" in block

    assert NO_FACTS_MARKER in PromptContractBuilder.build_style_source_facts_block([], None)

"""
Grounded chat orchestrator tests.
"""

import asyncio
import json
from typing import Optional

import pytest

from ghostwriter.agents.grounded_chat import APOLOGY_MESSAGE, GroundedChatOrchestrator
from ghostwriter.models.memory import SummaryType
from ghostwriter.schemas.intent import Intent
from ghostwriter.schemas.records import ChatMessageRecord, MemoryEntry, PostRecord, ProfileRecord
from ghostwriter.schemas.style import StyleJson
from ghostwriter.services.fact_validator import FactValidator
from ghostwriter.utils.prompts import NO_FACTS_MARKER
from tests.conftest import STYLE_RESPONSE, FakeLLM, make_post

CLASSIFIER = "intent classifier"
CLARIFIER = "asks clarifying questions"
WRITER = "LinkedIn content assistant"
ANALYST = "profile analyst"
STRATEGIST = "Provide strategy"
ASSISTANT = "Be professional and never invent facts"
CHECKER = "fact-checker"
EDITOR = "content editor"


def _classification(intent: str, **fields) -> str:
    data = {
        "intent": intent,
        "needs_clarification": False,
        "missing_fields": [],
        "requires_rag": False,
        "proposed_follow_ups": [],
    }
    data.update(fields)
    return json.dumps(data)


class FakeRetriever:
    def __init__(self, posts: Optional[list[PostRecord]] = None, error: Optional[Exception] = None):
        self.posts = posts or []
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def retrieve_relevant_posts(self, user_id, query, top_k=None):
        self.calls.append((user_id, query))
        if self.error is not None:
            raise self.error
        return list(self.posts)


class FakeRepository:
    def __init__(self, profile: Optional[ProfileRecord] = None, high_performing: Optional[list[PostRecord]] = None):
        self.profile = profile
        self.high_performing = high_performing or []

    async def get_profile(self, user_id):
        return self.profile

    async def get_high_performing_posts(self, user_id, limit):
        return self.high_performing[:limit]


def _orchestrator(settings, llm, retriever=None, repository=None) -> GroundedChatOrchestrator:
    return GroundedChatOrchestrator(
        settings=settings,
        llm=llm,
        retriever=retriever or FakeRetriever(),
        repository=repository or FakeRepository(),
        validator=FactValidator(llm, settings),
    )


@pytest.fixture
def style() -> StyleJson:
    return StyleJson.model_validate(STYLE_RESPONSE)


@pytest.mark.asyncio
async def test_write_post_needing_clarification_only_asks(settings, style):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("WRITE_POST", missing_fields=["topic"]))
        .on(CLARIFIER, "What topic should the post cover?")
    )
    retriever = FakeRetriever()
    orchestrator = _orchestrator(settings, llm, retriever)

    result = await orchestrator.respond("alice", "Write me a post", style_profile=style)

    assert result.response_text == "What topic should the post cover?"
    assert result.intent == Intent.WRITE_POST
    assert result.metadata["needs_clarification"] is True
    assert retriever.calls == []
    assert llm.calls_for(WRITER) == []
    assert llm.calls_for(CHECKER) == []


@pytest.mark.asyncio
async def test_retrieval_failure_does_not_abort_turn(settings):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("ANALYZE_PROFILE"))
        .on(ANALYST, "Strengths: none verifiable yet.")
        .on(CHECKER, json.dumps({"unsupportedClaims": [], "allSupported": True}))
    )
    orchestrator = _orchestrator(settings, llm, FakeRetriever(error=RuntimeError("index offline")))

    result = await orchestrator.respond("alice", "Analyze my profile")

    assert result.intent == Intent.ANALYZE_PROFILE
    assert result.response_text == "Strengths: none verifiable yet."
    assert result.metadata["retrieval_failed"] is True
    assert result.metadata["rag_posts_count"] == 0
    assert result.metadata["validated"] is True
    assert NO_FACTS_MARKER in llm.calls_for(ANALYST)[0]["prompt"]


@pytest.mark.asyncio
async def test_analyze_profile_is_grounded_in_profile_and_posts_only(settings):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("ANALYZE_PROFILE"))
        .on(ANALYST, "Your headline is clear.")
        .on(CHECKER, json.dumps({"unsupportedClaims": [], "allSupported": True}))
    )
    orchestrator = _orchestrator(
        settings,
        llm,
        FakeRetriever([make_post("p1", text="Shipped v2 of our API.")]),
        FakeRepository(profile=ProfileRecord(headline="CTO at Initech")),
    )
    memory = [MemoryEntry(summary_type=SummaryType.GOALS, content="Become a keynote speaker")]

    result = await orchestrator.respond("alice", "Analyze my profile", memory=memory)

    prompt = llm.calls_for(ANALYST)[0]["prompt"]
    assert "Headline: CTO at Initech" in prompt
    assert "Shipped v2 of our API." in prompt
    assert "keynote" not in prompt
    assert len(llm.calls_for(CHECKER)) == 1
    assert result.metadata["rag_posts_count"] == 1


@pytest.mark.asyncio
async def test_sensitive_write_post_is_validated_and_rewritten(settings, style):
    draft = "Hook: Ten years in.\nBody: My 10 years of experience at Google taught me patience.\nCTA: Thoughts?"
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("WRITE_POST"))
        .on(WRITER, draft)
        .on(CHECKER, json.dumps({"unsupportedClaims": ["My 10 years of experience at Google"], "allSupported": False}))
        .on(EDITOR, "Hook: Patience matters.\nBody: Patience is learned.\nCTA: Thoughts?")
    )
    retriever = FakeRetriever()
    orchestrator = _orchestrator(settings, llm, retriever)

    result = await orchestrator.respond("alice", "Write about my 10 years of experience", style_profile=style)

    assert retriever.calls == [("alice", "Write about my 10 years of experience")]
    assert "10 years of experience at Google" not in result.response_text
    assert result.metadata["requires_rag"] is True
    assert result.metadata["rewritten"] is True
    assert result.metadata["unsupported_claims_count"] == 1


PREVIOUS_REPLY_CLAIM = "I spent 10 years leading engineering at Google."


def _facts_only_checker(prompt: str) -> str:
    facts = prompt.split("FACTS BLOCK:", 1)[1].split("GENERATED TEXT TO VALIDATE:", 1)[0]
    if PREVIOUS_REPLY_CLAIM in facts:
        return json.dumps({"unsupportedClaims": [], "allSupported": True})
    return json.dumps({"unsupportedClaims": [PREVIOUS_REPLY_CLAIM], "allSupported": False})


@pytest.mark.asyncio
async def test_earlier_assistant_reply_does_not_support_claims(settings, style):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("WRITE_POST"))
        .on(WRITER, f"Hook. {PREVIOUS_REPLY_CLAIM} CTA.")
        .on(CHECKER, _facts_only_checker)
        .on(EDITOR, "Hook. CTA.")
    )
    history = [
        ChatMessageRecord(role="user", content="Tell me about my background"),
        ChatMessageRecord(role="assistant", content=PREVIOUS_REPLY_CLAIM),
    ]
    orchestrator = _orchestrator(settings, llm)

    result = await orchestrator.respond(
        "alice", "Write a post about my career", chat_history=history, style_profile=style
    )

    check_prompt = llm.calls_for(CHECKER)[0]["prompt"]
    assert "assistant: " not in check_prompt.split("GENERATED TEXT TO VALIDATE:", 1)[0]
    assert PREVIOUS_REPLY_CLAIM not in result.response_text
    assert result.metadata["rewritten"] is True

    writer_prompt = llm.calls_for(WRITER)[0]["prompt"]
    facts = writer_prompt.split("FACTS BLOCK:", 1)[1].split("INSTRUCTIONS BLOCK:", 1)[0]
    assert PREVIOUS_REPLY_CLAIM not in facts
    assert NO_FACTS_MARKER in facts
    assert f"assistant: {PREVIOUS_REPLY_CLAIM}" in writer_prompt.split("INSTRUCTIONS BLOCK:", 1)[1]


@pytest.mark.asyncio
async def test_non_sensitive_write_post_skips_validation(settings, style):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("WRITE_POST"))
        .on(WRITER, "Hook: Coffee.\nBody: Good coffee makes good mornings.\nCTA: Tea or coffee?")
    )
    orchestrator = _orchestrator(settings, llm)

    result = await orchestrator.respond("alice", "Write a fun post about coffee", style_profile=style)

    assert result.response_text.startswith("Hook: Coffee.")
    assert llm.calls_for(CHECKER) == []
    assert result.metadata["validated"] is False
    assert "Tone: conversational" in llm.calls_for(WRITER)[0]["prompt"]


@pytest.mark.asyncio
async def test_strategy_merges_high_performing_posts_without_validation(settings, style):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("STRATEGY"))
        .on(STRATEGIST, "Themes: hiring, leadership.")
    )
    shared = make_post("p1", text="Hiring is a product problem.")
    repository = FakeRepository(
        high_performing=[shared, make_post("p2", text="Onboarding beats interviewing.", is_high_performing=True)]
    )
    orchestrator = _orchestrator(settings, llm, FakeRetriever([shared]), repository)

    result = await orchestrator.respond("alice", "Give me a content plan", style_profile=style)

    prompt = llm.calls_for(STRATEGIST)[0]["prompt"]
    assert prompt.count("Hiring is a product problem.") == 1
    assert "Onboarding beats interviewing." in prompt
    assert "engineering leadership, hiring" in prompt
    assert result.metadata["rag_posts_count"] == 2
    assert llm.calls_for(CHECKER) == []


@pytest.mark.asyncio
async def test_other_intent_never_retrieves(settings):
    llm = (
        FakeLLM()
        .on(CLASSIFIER, _classification("OTHER", requires_rag=True))
        .on(ASSISTANT, "Hello! How can I help?")
    )
    retriever = FakeRetriever()
    orchestrator = _orchestrator(settings, llm, retriever)

    result = await orchestrator.respond("alice", "hi there")

    assert result.intent == Intent.OTHER
    assert result.response_text == "Hello! How can I help?"
    assert retriever.calls == []


@pytest.mark.asyncio
async def test_empty_generation_uses_fallback(settings):
    llm = FakeLLM().on(CLASSIFIER, _classification("OTHER")).on(ASSISTANT, "")
    orchestrator = _orchestrator(settings, llm)

    result = await orchestrator.respond("alice", "hi")

    assert result.response_text.startswith("I apologize")


@pytest.mark.asyncio
async def test_classification_failure_returns_apology(settings):
    llm = FakeLLM().on(CLASSIFIER, _classification("SELL_PRODUCT"))
    orchestrator = _orchestrator(settings, llm)

    result = await orchestrator.respond("alice", "hello")

    assert result.response_text == APOLOGY_MESSAGE
    assert result.intent is None
    assert result.metadata == {"error": "IntentClassificationError"}


class SlowLLM(FakeLLM):
    async def complete(self, prompt, system_prompt=None, temperature=None, json_mode=False):
        await asyncio.sleep(1)
        return await super().complete(prompt, system_prompt, temperature, json_mode)


@pytest.mark.asyncio
async def test_turn_timeout_returns_apology(settings):
    fast_timeout = settings.model_copy(update={"turn_timeout_seconds": 0.05})
    orchestrator = _orchestrator(fast_timeout, SlowLLM().on(CLASSIFIER, _classification("OTHER")))

    result = await orchestrator.respond("alice", "hello")

    assert result.response_text == APOLOGY_MESSAGE
    assert result.metadata == {"error": "timeout"}

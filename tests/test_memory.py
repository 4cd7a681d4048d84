"""
Long-term memory tests.
"""

import pytest

from ghostwriter.models.memory import SummaryType
from ghostwriter.schemas.records import ChatMessageRecord, ProfileRecord
from ghostwriter.services.memory_service import MemoryService
from ghostwriter.services.memory_summarizer import MemorySummarizer
from ghostwriter.services.user_service import UserService
from tests.conftest import FakeLLM, make_post

PERSONA = "persona summarizer"
GOALS = "goals extractor"
STRATEGY = "Create strategies"
WINS = "wins tracker"


class RecordingMemoryService:
    def __init__(self):
        self.entries: dict[SummaryType, str] = {}

    async def upsert_memory(self, user_id, summary_type, content):
        self.entries[summary_type] = content


class FakeRepository:
    def __init__(self, posts):
        self.posts = posts

    async def get_posts(self, user_id):
        return list(self.posts)


class FakeStyleService:
    async def get_style(self, user_id):
        return None


def _summarizer(settings, llm, posts=(), memory=None) -> tuple[MemorySummarizer, RecordingMemoryService]:
    memory = memory or RecordingMemoryService()
    return MemorySummarizer(llm, settings, memory, FakeRepository(posts), FakeStyleService()), memory


def _posts():
    return [
        make_post(f"p{i}", text=f"Post {i}", engagement_score=float(i), is_high_performing=i >= 5)
        for i in range(8)
    ]


@pytest.mark.asyncio
async def test_initial_memory_seeds_persona_and_goals(settings):
    llm = FakeLLM().on(PERSONA, "Pragmatic engineering leader.").on(GOALS, "Grow audience.")
    summarizer, memory = _summarizer(settings, llm)

    await summarizer.create_initial_memory("alice", ProfileRecord(headline="CTO"), _posts(), None)

    assert memory.entries == {
        SummaryType.PERSONA: "Pragmatic engineering leader.",
        SummaryType.GOALS: "Grow audience.",
    }
    persona_prompt = llm.calls_for(PERSONA)[0]["prompt"]
    assert "Post 7" in persona_prompt
    assert "Post 4" not in persona_prompt


@pytest.mark.asyncio
async def test_failed_summary_does_not_block_the_other(settings):
    llm = FakeLLM().on(PERSONA, RuntimeError("provider down")).on(GOALS, "Grow audience.")
    summarizer, memory = _summarizer(settings, llm)

    await summarizer.create_initial_memory("alice", None, _posts(), None)

    assert memory.entries == {SummaryType.GOALS: "Grow audience."}


@pytest.mark.asyncio
async def test_summary_retries_up_to_the_configured_attempts(settings):
    retrying = settings.model_copy(update={"memory_seed_max_attempts": 2})
    llm = FakeLLM().on(PERSONA, RuntimeError("flaky"), "Recovered persona.").on(GOALS, "Goals.")
    summarizer, memory = _summarizer(retrying, llm)

    await summarizer.create_initial_memory("alice", None, _posts(), None)

    assert memory.entries[SummaryType.PERSONA] == "Recovered persona."
    assert len(llm.calls_for(PERSONA)) == 2


@pytest.mark.asyncio
async def test_empty_summary_is_not_stored(settings):
    summarizer, memory = _summarizer(settings, FakeLLM().on(PERSONA, "   "))

    assert await summarizer.generate_persona_summary("alice", None, [], [], None) is None
    assert memory.entries == {}


@pytest.mark.asyncio
async def test_update_after_interaction_skips_small_histories(settings):
    llm = FakeLLM(default="anything")
    summarizer, memory = _summarizer(settings, llm, posts=_posts()[:2])

    await summarizer.update_memory_after_interaction(
        "alice", [ChatMessageRecord(role="user", content="hi")]
    )

    assert llm.calls == []
    assert memory.entries == {}


@pytest.mark.asyncio
async def test_update_after_interaction_refreshes_strategy_and_wins(settings):
    llm = FakeLLM().on(STRATEGY, "Post twice a week.").on(WINS, "Post 7 went viral.")
    summarizer, memory = _summarizer(settings, llm, posts=_posts())
    messages = [
        ChatMessageRecord(role="user", content="My goal is to grow my audience"),
        ChatMessageRecord(role="assistant", content="Great, let's plan."),
    ]

    await summarizer.update_memory_after_interaction("alice", messages)

    assert memory.entries == {
        SummaryType.CONTENT_STRATEGY: "Post twice a week.",
        SummaryType.PAST_WINS: "Post 7 went viral.",
    }


@pytest.mark.asyncio
async def test_update_after_interaction_never_raises(settings):
    llm = FakeLLM().on(STRATEGY, RuntimeError("boom")).on(WINS, "ok")
    summarizer, _ = _summarizer(settings, llm, posts=_posts())

    await summarizer.update_memory_after_interaction("alice", [])


@pytest.mark.asyncio
async def test_memory_service_upserts_one_entry_per_type(database):
    await UserService(database).ensure_user("alice")
    service = MemoryService(database)

    await service.upsert_memory("alice", SummaryType.GOALS, "v1")
    await service.upsert_memory("alice", SummaryType.GOALS, "v2")
    await service.upsert_memory("alice", SummaryType.PERSONA, {"traits": ["direct"]})

    entries = {entry.summary_type: entry.content for entry in await service.get_user_memory("alice")}
    assert entries == {SummaryType.GOALS: "v2", SummaryType.PERSONA: {"traits": ["direct"]}}
    assert await service.get_user_memory("bob") == []

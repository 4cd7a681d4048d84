"""
Pytest configuration and fixtures.
"""

import asyncio
import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Callable, Optional, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ghostwriter.api.main import create_app
from ghostwriter.core.cache import StyleProfileCache
from ghostwriter.core.config import Settings
from ghostwriter.core.container import ServiceContainer
from ghostwriter.core.database import Database
from ghostwriter.core.exceptions import JobFailedError
from ghostwriter.schemas.records import PostRecord
from ghostwriter.services.ingestion.schemas import ActorKind


# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

STYLE_RESPONSE = {
    "tone": "conversational",
    "formality_level": 4,
    "average_length_words": 120.0,
    "emoji_usage": "minimal",
    "structure_patterns": ["short paragraphs", "numbered list"],
    "hook_patterns": ["question"],
    "hashtag_style": "2-3 hashtags at end",
    "favorite_topics": ["engineering leadership", "hiring"],
    "common_phrases_or_cadence_examples": ["Here's the thing.", "Let that sink in."],
    "paragraph_density": "spaced",
}

Responder = Union[str, Exception, Callable[[str], str]]


class FakeLLM:
    """
    Stand-in for LLMClient.complete.

    Responses are routed by a substring of the system prompt; every call is
    recorded.
    """

    def __init__(self, default: str = ""):
        self.default = default
        self.routes: list[tuple[str, list[Responder]]] = []
        self.calls: list[dict[str, Any]] = []

    def on(self, marker: str, *responses: Responder) -> "FakeLLM":
        """Answer calls whose system prompt contains `marker`; the last response repeats."""
        self.routes.append((marker, list(responses)))
        return self

    def calls_for(self, marker: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if marker in (call["system_prompt"] or "")]

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "temperature": temperature,
            "json_mode": json_mode,
        })
        for marker, responses in self.routes:
            if marker in (system_prompt or ""):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(prompt)
                return response
        return self.default


class FakeEmbeddings:
    """Deterministic embeddings: explicit vectors by text, else hashed bag of words."""

    def __init__(self, dimension: int = 8, vectors: Optional[dict[str, list[float]]] = None):
        self.dimension = dimension
        self.vectors = vectors or {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if not text or not text.strip():
            raise ValueError("Cannot generate embedding for empty text")
        if text in self.fail_on:
            raise RuntimeError("embedding provider unavailable")
        if text in self.vectors:
            return list(self.vectors[text])

        vector = [0.0] * self.dimension
        for word in text.lower().split():
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            vector[bucket] += 1.0
        return vector


class FakeJobService:
    """Stand-in for ApifyJobService.run with canned dataset items."""

    def __init__(
        self,
        profile_items: Optional[list[dict]] = None,
        post_items: Optional[list[dict]] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.results: dict[ActorKind, Union[list[dict], Exception]] = {
            ActorKind.PROFILE: profile_items if profile_items is not None else [sample_profile_item()],
            ActorKind.POSTS: post_items if post_items is not None else sample_post_items(6),
        }
        self.gate = gate
        self.calls: list[tuple[ActorKind, str]] = []

    async def run(self, kind: ActorKind, target_url: str) -> list[dict]:
        self.calls.append((kind, target_url))
        if self.gate is not None:
            await self.gate.wait()
        result = self.results[kind]
        if isinstance(result, Exception):
            raise result
        return result


def sample_profile_item() -> dict:
    return {
        "basic_info": {
            "headline": "VP Engineering at Acme",
            "about": "I build engineering teams that ship.",
            "location": {"full": "Berlin, Germany"},
        },
        "experience": [{"title": "VP Engineering", "company": "Acme"}],
    }


def sample_post_items(count: int) -> list[dict]:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        {
            "text": f"Post {i} about hiring great engineers and team culture.",
            "numLikes": 10 * (i + 1),
            "numComments": i,
            "numShares": 0,
            "postedAtISO": (base + timedelta(days=i)).isoformat(),
        }
        for i in range(count)
    ]


def make_post(post_id: str, text: Optional[str] = "Some post", **fields: Any) -> PostRecord:
    return PostRecord(id=post_id, text=text, **fields)


def failed_job(kind: str = "posts") -> JobFailedError:
    return JobFailedError(f"{kind}-run", "FAILED")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        environment="development",
        scrape_poll_interval_seconds=0,
        scrape_timeout_seconds=1,
        memory_seed_max_attempts=1,
        turn_timeout_seconds=5,
        sentry_dsn="",
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Create test database."""
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM().on("analyzing writing styles", json.dumps(STYLE_RESPONSE))


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def fake_jobs() -> FakeJobService:
    return FakeJobService()


@pytest_asyncio.fixture
async def container(
    settings: Settings,
    database: Database,
    fake_llm: FakeLLM,
    fake_embeddings: FakeEmbeddings,
    fake_jobs: FakeJobService,
) -> AsyncGenerator[ServiceContainer, None]:
    """Container wired to fakes. The style cache is never connected."""
    container = ServiceContainer.build(
        settings,
        database=database,
        llm=fake_llm,
        embeddings=fake_embeddings,
        jobs=fake_jobs,
        cache=StyleProfileCache("redis://localhost:6379/15", 60),
    )
    yield container
    await container.tasks.shutdown()


@pytest_asyncio.fixture
async def client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    app = create_app(container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_user_id(settings: Settings) -> str:
    """The user development-mode auth resolves to."""
    return settings.dev_user_id

"""
Analysis service tests: scoring, embeddings, style extraction and status.
"""

import pytest

from ghostwriter.core.exceptions import AnalysisError, OnboardingStateError, StyleContractError
from ghostwriter.models.user import OnboardingStatus
from ghostwriter.schemas.style import ConfidenceLevel
from ghostwriter.services.analysis.service import text_fingerprint
from ghostwriter.services.ingestion.schemas import ParsedPost, ParsedProfile

STYLE_EXTRACTION = "analyzing writing styles"


async def _onboarded(container, user_id: str, posts: list[ParsedPost], about: str = "I lead teams.") -> None:
    """Put a user into analysis_in_progress with stored data."""
    await container.users.ensure_user(user_id)
    await container.users.transition(user_id, OnboardingStatus.SCRAPING_IN_PROGRESS)
    await container.repository.replace_ingested_data(user_id, ParsedProfile(about=about), posts)
    await container.users.transition(user_id, OnboardingStatus.ANALYSIS_IN_PROGRESS)


def _posts(count: int) -> list[ParsedPost]:
    return [
        ParsedPost(text=f"Lesson {i} on building teams.", likes_count=i, comments_count=1)
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_analysis_scores_embeds_and_stores_style(container, fake_llm):
    await _onboarded(container, "alice", _posts(10))

    confidence = await container.analysis.run("alice")
    await container.tasks.drain(timeout=5)

    assert confidence == ConfidenceLevel.HIGH
    assert await container.users.get_status("alice") == OnboardingStatus.READY
    assert await container.styles.get_confidence("alice") == ConfidenceLevel.HIGH

    posts = await container.repository.get_posts("alice")
    assert [post.engagement_score for post in posts][:3] == [2 + 9.0, 2 + 8.0, 2 + 7.0]
    assert sum(post.is_high_performing for post in posts) == 3
    assert await container.vector_index.count("alice") == 10

    call = fake_llm.calls_for(STYLE_EXTRACTION)[0]
    assert call["json_mode"] is True
    assert "PROFILE ABOUT SECTION:\nI lead teams." in call["prompt"]


@pytest.mark.asyncio
async def test_missing_about_caps_confidence_at_medium(container):
    await _onboarded(container, "alice", _posts(12), about="")

    assert await container.analysis.run("alice") == ConfidenceLevel.MEDIUM


@pytest.mark.asyncio
async def test_no_posts_is_an_analysis_error(container):
    await _onboarded(container, "alice", [])

    with pytest.raises(AnalysisError):
        await container.analysis.run("alice")

    assert await container.users.get_status("alice") == OnboardingStatus.ERROR


@pytest.mark.asyncio
async def test_off_contract_style_output_fails_analysis(container, fake_llm):
    fake_llm.routes.clear()
    fake_llm.on(STYLE_EXTRACTION, '{"tone": "casual", "emoji_usage": "tons"}')
    await _onboarded(container, "alice", _posts(3))

    with pytest.raises(StyleContractError):
        await container.analysis.run("alice")

    assert await container.users.get_status("alice") == OnboardingStatus.ERROR
    assert await container.styles.get_style("alice") is None


@pytest.mark.asyncio
async def test_refresh_embeddings_skips_unchanged_and_empty_posts(container, fake_embeddings):
    await _onboarded(container, "alice", _posts(2) + [ParsedPost(text=None), ParsedPost(text="   ")])
    posts = await container.repository.get_posts("alice")

    assert await container.analysis.refresh_embeddings("alice", posts) == 2
    assert await container.analysis.refresh_embeddings("alice", posts) == 0
    assert len(fake_embeddings.calls) == 2

    fingerprints = await container.vector_index.fingerprints("alice")
    assert sorted(fingerprints.values()) == sorted(text_fingerprint(p.text) for p in posts if p.has_text)


@pytest.mark.asyncio
async def test_embedding_failure_skips_only_that_post(container, fake_embeddings):
    await _onboarded(container, "alice", _posts(3))
    fake_embeddings.fail_on.add("Lesson 1 on building teams.")

    await container.analysis.run("alice")

    assert await container.vector_index.count("alice") == 2
    assert await container.users.get_status("alice") == OnboardingStatus.READY


@pytest.mark.asyncio
async def test_reanalyze_from_ready(container):
    await _onboarded(container, "alice", _posts(3))
    await container.analysis.run("alice")
    await container.tasks.drain(timeout=5)

    confidence = await container.analysis.reanalyze("alice")

    assert confidence == ConfidenceLevel.LOW
    assert await container.users.get_status("alice") == OnboardingStatus.READY


@pytest.mark.asyncio
async def test_reanalyze_requires_ready(container):
    await _onboarded(container, "alice", [])
    with pytest.raises(AnalysisError):
        await container.analysis.run("alice")

    with pytest.raises(OnboardingStateError):
        await container.analysis.reanalyze("alice")
    assert await container.users.get_status("alice") == OnboardingStatus.ERROR

"""
API endpoint tests.
"""

import json

import pytest
import pytest_asyncio
from httpx import AsyncClient
from jose import jwt

from ghostwriter.models.chat import MessageRole

PROFILE_URL = "https://www.linkedin.com/in/jane-doe"


@pytest_asyncio.fixture
async def ready_user(client: AsyncClient, container) -> str:
    response = await client.post("/api/v1/onboarding/linkedin-url", json={"linkedin_url": PROFILE_URL})
    assert response.status_code == 202
    await container.tasks.drain(timeout=5)
    return container.settings.dev_user_id


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "name" in data
    assert data["endpoints"]["chats"] == "/api/v1/chats"


@pytest.mark.asyncio
async def test_new_user_is_pending(client: AsyncClient):
    response = await client.get("/api/v1/onboarding/status")
    assert response.status_code == 200
    assert response.json() == {"onboarding_status": "linkedin_url_pending", "linkedin_url": None}


@pytest.mark.asyncio
async def test_invalid_url_is_rejected(client: AsyncClient, fake_jobs):
    response = await client.post("/api/v1/onboarding/linkedin-url", json={"linkedin_url": "https://example.com/jane"})

    assert response.status_code == 400
    assert fake_jobs.calls == []
    status = await client.get("/api/v1/onboarding/status")
    assert status.json()["onboarding_status"] == "linkedin_url_pending"


@pytest.mark.asyncio
async def test_onboarding_flow_reaches_ready(client: AsyncClient, container):
    response = await client.post("/api/v1/onboarding/linkedin-url", json={"linkedin_url": PROFILE_URL})
    assert response.status_code == 202
    assert response.json()["onboarding_status"] == "scraping_in_progress"

    await container.tasks.drain(timeout=5)

    status = await client.get("/api/v1/onboarding/status")
    assert status.json() == {"onboarding_status": "ready", "linkedin_url": PROFILE_URL}


@pytest.mark.asyncio
async def test_chat_crud(client: AsyncClient):
    created = await client.post("/api/v1/chats", json={"title": "Launch posts"})
    assert created.status_code == 201
    chat_id = created.json()["id"]

    listed = await client.get("/api/v1/chats")
    assert [chat["id"] for chat in listed.json()["chats"]] == [chat_id]

    for text in ("first", "second"):
        added = await client.post(f"/api/v1/chats/{chat_id}/messages", json={"content": text})
        assert added.status_code == 201

    messages = await client.get(f"/api/v1/chats/{chat_id}/messages")
    assert [m["content"] for m in messages.json()["messages"]] == ["first", "second"]


@pytest.mark.asyncio
async def test_unknown_chat_is_not_found(client: AsyncClient, container):
    other = await container.chats.create_chat("someone-else")

    assert (await client.get(f"/api/v1/chats/{other.id}/messages")).status_code == 404
    assert (await client.post(f"/api/v1/chats/{other.id}/respond", json={"message": "hi"})).status_code == 404


@pytest.mark.asyncio
async def test_respond_requires_ready_onboarding(client: AsyncClient):
    chat_id = (await client.post("/api/v1/chats", json={})).json()["id"]

    response = await client.post(f"/api/v1/chats/{chat_id}/respond", json={"message": "Write a post"})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_respond_stores_both_messages(client: AsyncClient, container, fake_llm, ready_user):
    fake_llm.on(
        "intent classifier",
        json.dumps({"intent": "OTHER", "needs_clarification": False, "missing_fields": [],
                    "requires_rag": False, "proposed_follow_ups": []}),
    ).on("Be professional and never invent facts", "Happy to help with your LinkedIn.")
    chat_id = (await client.post("/api/v1/chats", json={"title": "Ideas"})).json()["id"]

    response = await client.post(f"/api/v1/chats/{chat_id}/respond", json={"message": "Hello there"})
    await container.tasks.drain(timeout=5)

    assert response.status_code == 200
    body = response.json()
    assert body["intent"] == "OTHER"
    assert body["message"]["content"] == "Happy to help with your LinkedIn."
    assert body["message"]["metadata"]["intent"] == "OTHER"

    messages = (await client.get(f"/api/v1/chats/{chat_id}/messages")).json()["messages"]
    assert [(m["role"], m["content"]) for m in messages] == [
        (MessageRole.USER.value, "Hello there"),
        (MessageRole.ASSISTANT.value, "Happy to help with your LinkedIn."),
    ]


@pytest.mark.asyncio
async def test_respond_failure_still_returns_a_message(client: AsyncClient, container, fake_llm, ready_user):
    fake_llm.on("intent classifier", "not json at all")
    chat_id = (await client.post("/api/v1/chats", json={})).json()["id"]

    response = await client.post(f"/api/v1/chats/{chat_id}/respond", json={"message": "Hello"})
    await container.tasks.drain(timeout=5)

    assert response.status_code == 200
    assert response.json()["intent"] is None
    assert response.json()["message"]["metadata"]["error"] == "IntentClassificationError"


@pytest.mark.asyncio
async def test_production_requires_valid_token(client: AsyncClient, container):
    container.settings = container.settings.model_copy(update={"environment": "production"})

    assert (await client.get("/api/v1/chats")).status_code == 401
    assert (await client.get("/api/v1/chats", headers={"Authorization": "Bearer nope"})).status_code == 401

    token = jwt.encode({"sub": "jwt-user"}, container.settings.jwt_secret_key, algorithm=container.settings.jwt_algorithm)
    response = await client.get("/api/v1/chats", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert await container.users.get_profile("jwt-user") is not None

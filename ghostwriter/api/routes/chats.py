"""
Chat API routes.

Chats, their message log, and the grounded respond endpoint.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ghostwriter.api.deps import get_container, get_current_user
from ghostwriter.core.container import ServiceContainer
from ghostwriter.models.chat import Chat, MessageRole
from ghostwriter.models.user import OnboardingStatus
from ghostwriter.schemas.records import ChatMessageRecord
from ghostwriter.utils.validators import sanitize_user_input

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/chats", tags=["chats"])


class CreateChatRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=255)


class MessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class RespondRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=10000)


class RespondResponse(BaseModel):
    message: dict
    intent: Optional[str] = None


async def _get_owned_chat(container: ServiceContainer, chat_id: str, user_id: str) -> Chat:
    chat = await container.chats.get_chat(chat_id, user_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


@router.get("")
async def list_chats(
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    chats = await container.chats.list_chats(user_id)
    return {"chats": [chat.to_dict() for chat in chats]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_chat(
    request: CreateChatRequest,
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    chat = await container.chats.create_chat(user_id, request.title)
    return chat.to_dict()


@router.get("/{chat_id}/messages")
async def get_messages(
    chat_id: str,
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    await _get_owned_chat(container, chat_id, user_id)
    messages = await container.chats.get_messages(chat_id)
    return {"messages": [message.to_dict() for message in messages]}


@router.post("/{chat_id}/messages", status_code=status.HTTP_201_CREATED)
async def add_message(
    chat_id: str,
    request: MessageRequest,
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    await _get_owned_chat(container, chat_id, user_id)
    content = sanitize_user_input(request.content)
    if not content:
        raise HTTPException(status_code=400, detail="Message content is required")
    message = await container.chats.add_message(chat_id, MessageRole.USER, content, user_id=user_id)
    return message.to_dict()


@router.post("/{chat_id}/respond", response_model=RespondResponse)
async def respond(
    chat_id: str,
    request: RespondRequest,
    user_id: str = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> RespondResponse:
    """
    Run one grounded turn.

    Stores the user message, generates the assistant reply, stores it with
    the turn metadata and refreshes long-term memory in the background.
    """
    await _get_owned_chat(container, chat_id, user_id)

    if await container.users.get_status(user_id) != OnboardingStatus.READY:
        raise HTTPException(status_code=409, detail="Onboarding is not complete")

    user_message = sanitize_user_input(request.message)
    if not user_message:
        raise HTTPException(status_code=400, detail="User message is required")

    settings = container.settings
    history_limit = max(settings.classifier_history_window, settings.facts_history_window)
    history = [
        ChatMessageRecord.model_validate(message)
        for message in await container.chats.get_recent_messages(chat_id, history_limit)
    ]

    await container.chats.add_message(chat_id, MessageRole.USER, user_message, user_id=user_id)

    style_profile = await container.styles.get_style(user_id)
    memory = await container.memory.get_user_memory(user_id)

    result = await container.orchestrator.respond(
        user_id=user_id,
        user_message=user_message,
        chat_history=history,
        style_profile=style_profile,
        memory=memory,
    )
    intent = result.intent.value if result.intent else None

    assistant_message = await container.chats.add_message(
        chat_id,
        MessageRole.ASSISTANT,
        result.response_text,
        metadata={**result.metadata, "intent": intent},
    )

    conversation = [
        ChatMessageRecord.model_validate(message)
        for message in await container.chats.get_messages(chat_id)
    ]
    container.tasks.spawn(
        "update_memory_after_interaction",
        container.summarizer.update_memory_after_interaction(user_id, conversation),
        user_id=user_id,
        chat_id=chat_id,
    )

    return RespondResponse(message=assistant_message.to_dict(), intent=intent)

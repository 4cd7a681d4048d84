"""
Chat Service.

CRUD for chats and their append-only message log.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select

from ghostwriter.core.database import Database, utcnow
from ghostwriter.models.chat import Chat, ChatMessage, MessageRole

logger = structlog.get_logger(__name__)


class ChatService:
    """Chats are scoped by user; messages are read in creation order."""

    def __init__(self, database: Database):
        self.database = database

    async def list_chats(self, user_id: str) -> list[Chat]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Chat).where(Chat.user_id == user_id).order_by(Chat.updated_at.desc())
            )
            return list(result.scalars().all())

    async def create_chat(self, user_id: str, title: Optional[str] = None) -> Chat:
        async with self.database.session() as session:
            chat = Chat(id=str(uuid.uuid4()), user_id=user_id, title=title or "New chat")
            session.add(chat)
            await session.commit()
            await session.refresh(chat)
            logger.info("Chat created", chat_id=chat.id, user_id=user_id)
            return chat

    async def get_chat(self, chat_id: str, user_id: str) -> Optional[Chat]:
        """Get a chat only if it belongs to the user."""
        async with self.database.session() as session:
            result = await session.execute(
                select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_messages(self, chat_id: str) -> list[ChatMessage]:
        """All messages of a chat, oldest first."""
        async with self.database.session() as session:
            result = await session.execute(
                select(ChatMessage)
                .where(ChatMessage.chat_id == chat_id)
                .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            )
            return list(result.scalars().all())

    async def get_recent_messages(self, chat_id: str, limit: int) -> list[ChatMessage]:
        """The true tail of the conversation, oldest first."""
        async with self.database.session() as session:
            result = await session.execute(
                select(ChatMessage)
                .where(ChatMessage.chat_id == chat_id)
                .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
                .limit(limit)
            )
            messages = list(result.scalars().all())
        messages.reverse()
        return messages

    async def add_message(
        self,
        chat_id: str,
        role: MessageRole,
        content: str,
        user_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> ChatMessage:
        async with self.database.session() as session:
            message = ChatMessage(
                id=str(uuid.uuid4()),
                chat_id=chat_id,
                user_id=user_id if role == MessageRole.USER else None,
                role=role.value,
                content=content,
                extra_metadata=metadata or {},
                created_at=utcnow(),
            )
            session.add(message)

            chat = await session.get(Chat, chat_id)
            if chat is not None:
                chat.updated_at = utcnow()

            await session.commit()
            await session.refresh(message)
            return message

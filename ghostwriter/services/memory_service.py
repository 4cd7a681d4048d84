"""
Memory Service.

Long-term memory slots: one row per (user, summary type), upserted.
"""

import uuid
from typing import Any

import structlog
from sqlalchemy import select

from ghostwriter.core.database import Database
from ghostwriter.models.memory import LongTermMemory, SummaryType
from ghostwriter.schemas.records import MemoryEntry

logger = structlog.get_logger(__name__)


class MemoryService:

    def __init__(self, database: Database):
        self.database = database

    async def get_user_memory(self, user_id: str) -> list[MemoryEntry]:
        """All memory entries for the user, most recently updated first."""
        async with self.database.session() as session:
            result = await session.execute(
                select(LongTermMemory)
                .where(LongTermMemory.user_id == user_id)
                .order_by(LongTermMemory.updated_at.desc())
            )
            return [MemoryEntry.model_validate(row) for row in result.scalars().all()]

    async def upsert_memory(self, user_id: str, summary_type: SummaryType, content: Any) -> None:
        async with self.database.session() as session:
            result = await session.execute(
                select(LongTermMemory).where(
                    LongTermMemory.user_id == user_id,
                    LongTermMemory.summary_type == summary_type.value,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(LongTermMemory(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    summary_type=summary_type.value,
                    content=content,
                ))
            else:
                row.content = content
            await session.commit()

        logger.info("Memory updated", user_id=user_id, summary_type=summary_type.value)

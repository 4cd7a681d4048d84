"""
Style Profile Service.

Stores the one-per-user StyleJson and reads it back through the cache.
Stored data is re-validated on every read; anything off-contract is
treated as "no style profile".
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select

from ghostwriter.core.cache import StyleProfileCache
from ghostwriter.core.database import Database
from ghostwriter.models.style_profile import StyleProfile
from ghostwriter.schemas.style import ConfidenceLevel, StyleJson, load_stored_style

logger = structlog.get_logger(__name__)


class StyleProfileService:

    def __init__(self, database: Database, cache: Optional[StyleProfileCache] = None):
        self.database = database
        self.cache = cache

    async def get_style(self, user_id: str) -> Optional[StyleJson]:
        if self.cache is not None:
            cached = await self.cache.get_style_profile(user_id)
            if cached is not None:
                return cached

        async with self.database.session() as session:
            result = await session.execute(select(StyleProfile).where(StyleProfile.user_id == user_id))
            record = result.scalar_one_or_none()

        if record is None:
            return None

        style = load_stored_style(record.style_json)
        if style is not None and self.cache is not None:
            await self.cache.set_style_profile(user_id, style)
        return style

    async def get_confidence(self, user_id: str) -> Optional[ConfidenceLevel]:
        async with self.database.session() as session:
            result = await session.execute(
                select(StyleProfile.data_confidence_level).where(StyleProfile.user_id == user_id)
            )
            value = result.scalar_one_or_none()
        return ConfidenceLevel(value) if value else None

    async def upsert(
        self,
        user_id: str,
        style: StyleJson,
        confidence: ConfidenceLevel,
        posts_analyzed: int,
    ) -> None:
        async with self.database.session() as session:
            result = await session.execute(select(StyleProfile).where(StyleProfile.user_id == user_id))
            record = result.scalar_one_or_none()
            if record is None:
                record = StyleProfile(id=str(uuid.uuid4()), user_id=user_id)
                session.add(record)
            record.style_json = style.model_dump()
            record.data_confidence_level = confidence.value
            record.posts_analyzed = posts_analyzed
            await session.commit()

        if self.cache is not None:
            await self.cache.invalidate_style_profile(user_id)

        logger.info("Style profile stored", user_id=user_id, confidence=confidence.value)

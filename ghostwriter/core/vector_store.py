"""
Post vector index.

Two interchangeable backends rank a user's post embeddings against a query
vector by cosine similarity:

- SqlPostVectorIndex: linear scan over the post_embeddings table
- QdrantPostVectorIndex: nearest-neighbour search in a Qdrant collection

Both order results by (-score, post_id), so identical inputs produce
identical rankings regardless of backend.
"""

import math
import uuid
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

import structlog
from pydantic import BaseModel
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PointStruct,
    VectorParams,
)
from sqlalchemy import delete, func, select

from ghostwriter.core.database import Database
from ghostwriter.models.linkedin import PostEmbedding

logger = structlog.get_logger(__name__)


class VectorSearchResult(BaseModel):
    """One ranked post."""
    post_id: str
    score: float
    dimension_mismatch: bool = False


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> tuple[float, bool]:
    """
    Cosine similarity of two vectors.

    Vectors of different length are truncated to the shared minimum length.
    This is lossy; the second return value flags it so callers can report
    the data-quality problem. Zero vectors score 0.0.
    """
    mismatch = len(a) != len(b)
    n = min(len(a), len(b))
    if n == 0:
        return 0.0, mismatch

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for i in range(n):
        x = float(a[i])
        y = float(b[i])
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0, mismatch
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b)), mismatch


def rank_by_similarity(
    query_vector: Sequence[float],
    candidates: Iterable[tuple[str, Sequence[float]]],
    top_k: int,
) -> list[VectorSearchResult]:
    """Rank (post_id, vector) candidates by similarity, highest first, ties by post_id."""
    if top_k <= 0:
        return []

    results = []
    mismatched = 0
    for post_id, vector in candidates:
        score, mismatch = cosine_similarity(query_vector, vector)
        if mismatch:
            mismatched += 1
        results.append(VectorSearchResult(post_id=post_id, score=score, dimension_mismatch=mismatch))

    if mismatched:
        logger.warning(
            "Embedding dimension mismatch",
            event_type="embedding_dimension_mismatch",
            query_dimension=len(query_vector),
            mismatched_vectors=mismatched,
        )

    results.sort(key=lambda r: (-r.score, r.post_id))
    return results[:top_k]


class BasePostVectorIndex(ABC):
    """Per-user storage and similarity search for post embeddings."""

    @abstractmethod
    async def upsert(self, user_id: str, post_id: str, vector: list[float], text_hash: str) -> None:
        """Insert or replace the embedding for one post."""

    @abstractmethod
    async def search(self, user_id: str, query_vector: list[float], top_k: int) -> list[VectorSearchResult]:
        """Top-K posts of this user most similar to the query vector."""

    @abstractmethod
    async def count(self, user_id: str) -> int:
        """Number of stored embeddings for the user."""

    @abstractmethod
    async def fingerprints(self, user_id: str) -> dict[str, str]:
        """Map of post_id to the hash of the text each embedding was built from."""

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Remove all embeddings for the user."""

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None


class SqlPostVectorIndex(BasePostVectorIndex):
    """Linear scan over post_embeddings."""

    def __init__(self, database: Database):
        self.database = database

    async def upsert(self, user_id: str, post_id: str, vector: list[float], text_hash: str) -> None:
        async with self.database.session() as session:
            existing = await session.get(PostEmbedding, post_id)
            if existing is not None:
                if existing.user_id != user_id:
                    raise ValueError(f"Post {post_id} does not belong to user {user_id}")
                existing.vector = list(vector)
                existing.dimension = len(vector)
                existing.text_hash = text_hash
            else:
                session.add(PostEmbedding(
                    post_id=post_id,
                    user_id=user_id,
                    vector=list(vector),
                    dimension=len(vector),
                    text_hash=text_hash,
                ))
            await session.commit()

    async def search(self, user_id: str, query_vector: list[float], top_k: int) -> list[VectorSearchResult]:
        async with self.database.session() as session:
            result = await session.execute(
                select(PostEmbedding.post_id, PostEmbedding.vector)
                .where(PostEmbedding.user_id == user_id)
                .order_by(PostEmbedding.post_id)
            )
            rows = result.all()

        return rank_by_similarity(query_vector, ((row.post_id, row.vector) for row in rows), top_k)

    async def count(self, user_id: str) -> int:
        async with self.database.session() as session:
            result = await session.execute(
                select(func.count()).select_from(PostEmbedding).where(PostEmbedding.user_id == user_id)
            )
            return int(result.scalar_one())

    async def fingerprints(self, user_id: str) -> dict[str, str]:
        async with self.database.session() as session:
            result = await session.execute(
                select(PostEmbedding.post_id, PostEmbedding.text_hash).where(PostEmbedding.user_id == user_id)
            )
            return {row.post_id: row.text_hash for row in result.all()}

    async def delete_user(self, user_id: str) -> None:
        async with self.database.session() as session:
            await session.execute(delete(PostEmbedding).where(PostEmbedding.user_id == user_id))
            await session.commit()


class QdrantPostVectorIndex(BasePostVectorIndex):
    """
    Qdrant-backed index. Payload carries user_id, post_id and text_hash.

    Rankings match SqlPostVectorIndex: results are over-fetched until the
    K-th score is not tied with anything beyond the page, then ordered by
    (-score, post_id). A query whose length differs from the collection
    dimension cannot be sent to Qdrant, so the user's stored vectors are
    ranked locally with the same truncate-and-flag rule.
    """

    SCROLL_PAGE_SIZE = 256
    TIE_MARGIN = 5

    def __init__(
        self,
        url: Optional[str],
        api_key: Optional[str],
        collection_name: str,
        dimension: int,
        location: Optional[str] = None,
    ):
        if location:
            self.client = AsyncQdrantClient(location=location)
        else:
            self.client = AsyncQdrantClient(url=url, api_key=api_key or None, timeout=30)
        self.collection_name = collection_name
        self.dimension = dimension

    @staticmethod
    def _point_id(post_id: str) -> str:
        # Qdrant ids must be UUIDs or integers
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"post:{post_id}"))

    @staticmethod
    def _user_filter(user_id: str) -> Filter:
        return Filter(must=[FieldCondition(key="user_id", match=MatchValue(value=user_id))])

    async def connect(self) -> None:
        """Create the collection if it does not exist."""
        collections = (await self.client.get_collections()).collections
        if any(c.name == self.collection_name for c in collections):
            return
        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE),
        )
        logger.info("Qdrant collection created", collection=self.collection_name, dimension=self.dimension)

    async def close(self) -> None:
        await self.client.close()

    async def upsert(self, user_id: str, post_id: str, vector: list[float], text_hash: str) -> None:
        await self.client.upsert(
            collection_name=self.collection_name,
            points=[
                PointStruct(
                    id=self._point_id(post_id),
                    vector=list(vector),
                    payload={"user_id": user_id, "post_id": post_id, "text_hash": text_hash},
                )
            ],
        )

    async def search(self, user_id: str, query_vector: list[float], top_k: int) -> list[VectorSearchResult]:
        if top_k <= 0:
            return []

        if len(query_vector) != self.dimension:
            candidates = [
                (payload["post_id"], vector)
                async for payload, vector in self._scroll_user(user_id, with_vectors=True)
            ]
            return rank_by_similarity(query_vector, candidates, top_k)

        limit = top_k + self.TIE_MARGIN
        while True:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=list(query_vector),
                query_filter=self._user_filter(user_id),
                limit=limit,
                with_payload=True,
            )
            points = response.points
            if len(points) < limit or points[-1].score < points[top_k - 1].score:
                break
            limit *= 2

        results = [
            VectorSearchResult(post_id=str((point.payload or {}).get("post_id")), score=float(point.score))
            for point in points
            if (point.payload or {}).get("post_id")
        ]
        results.sort(key=lambda r: (-r.score, r.post_id))
        return results[:top_k]

    async def count(self, user_id: str) -> int:
        response = await self.client.count(
            collection_name=self.collection_name,
            count_filter=self._user_filter(user_id),
            exact=True,
        )
        return response.count

    async def fingerprints(self, user_id: str) -> dict[str, str]:
        return {
            payload["post_id"]: payload.get("text_hash", "")
            async for payload, _ in self._scroll_user(user_id, with_vectors=False)
        }

    async def delete_user(self, user_id: str) -> None:
        await self.client.delete(
            collection_name=self.collection_name,
            points_selector=FilterSelector(filter=self._user_filter(user_id)),
        )

    async def _scroll_user(self, user_id: str, with_vectors: bool) -> AsyncIterator[tuple[dict, Any]]:
        offset = None
        while True:
            points, offset = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=self._user_filter(user_id),
                limit=self.SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=with_vectors,
            )
            for point in points:
                payload = point.payload or {}
                if payload.get("post_id"):
                    yield payload, point.vector
            if offset is None:
                break

"""
RAG (Retrieval Augmented Generation) Retriever Service.

Embeds the query with the same model used for the post corpus and returns
the user's most similar posts. Missing data is an empty result, never an
error.
"""

from typing import Optional

import structlog

from ghostwriter.core.embeddings import EmbeddingService
from ghostwriter.core.vector_store import BasePostVectorIndex
from ghostwriter.schemas.records import PostRecord
from ghostwriter.services.linkedin_repository import LinkedInRepository

logger = structlog.get_logger(__name__)


class RAGRetriever:
    """Semantic search over one user's LinkedIn posts."""

    def __init__(
        self,
        embeddings: EmbeddingService,
        vector_index: BasePostVectorIndex,
        repository: LinkedInRepository,
        default_top_k: int = 5,
    ):
        self.embeddings = embeddings
        self.vector_index = vector_index
        self.repository = repository
        self.default_top_k = default_top_k

    async def retrieve_relevant_posts(
        self,
        user_id: str,
        query: str,
        top_k: Optional[int] = None,
    ) -> list[PostRecord]:
        """
        Top-K posts of `user_id` by cosine similarity to `query`.

        Args:
            user_id: Owner of the posts; no other user's posts are considered
            query: Free-text query; empty or whitespace returns []
            top_k: Number of results, defaults to the configured K

        Returns:
            Posts in descending similarity order
        """
        if not query or not query.strip():
            return []

        k = self.default_top_k if top_k is None else top_k
        if k <= 0:
            return []

        if await self.vector_index.count(user_id) == 0:
            logger.info("No embeddings stored for user", user_id=user_id)
            return []

        query_vector = await self.embeddings.embed(query)
        results = await self.vector_index.search(user_id, query_vector, k)
        posts = await self.repository.get_posts_by_ids(user_id, [r.post_id for r in results])

        logger.debug(
            "RAG retrieval",
            user_id=user_id,
            results=len(posts),
            top_score=results[0].score if results else None,
        )
        return posts

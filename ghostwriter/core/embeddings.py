"""
Embedding service.

The same provider and model embed both the post corpus and incoming
queries, so stored and query vectors share one dimension.
"""

import asyncio

import google.generativeai as genai
import structlog
from openai import AsyncOpenAI

from ghostwriter.core.config import Settings

logger = structlog.get_logger(__name__)


class EmbeddingService:
    """Service for generating embeddings using OpenAI or Gemini."""

    def __init__(self, settings: Settings):
        self.provider = settings.embedding_provider
        self.timeout = settings.llm_timeout

        if self.provider == "gemini":
            genai.configure(api_key=settings.google_api_key)
            self.model = settings.google_embedding_model
            self.dimension = 768
        else:
            self.client = AsyncOpenAI(api_key=settings.openai_api_key)
            self.model = settings.openai_embedding_model
            self.dimension = 1536

    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        if not text or not text.strip():
            raise ValueError("Cannot generate embedding for empty text")

        if self.provider == "gemini":
            loop = asyncio.get_running_loop()
            result = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: genai.embed_content(model=self.model, content=text),
                ),
                timeout=self.timeout,
            )
            return list(result["embedding"])

        response = await asyncio.wait_for(
            self.client.embeddings.create(model=self.model, input=text),
            timeout=self.timeout,
        )
        if not response.data:
            raise ValueError("Embedding response contained no vectors")
        return list(response.data[0].embedding)

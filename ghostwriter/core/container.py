"""
Service container.

Every collaborator client and service is built once from Settings and
wired here. Routes, scripts and tests obtain components from a container
instead of module-level singletons; tests pass fakes through `build`.
"""

from typing import Optional

import httpx
import structlog

from ghostwriter.agents.grounded_chat import GroundedChatOrchestrator
from ghostwriter.core.cache import StyleProfileCache
from ghostwriter.core.config import Settings
from ghostwriter.core.database import Database
from ghostwriter.core.embeddings import EmbeddingService
from ghostwriter.core.llm_clients import LLMClient
from ghostwriter.core.tasks import BackgroundTaskRunner
from ghostwriter.core.vector_store import BasePostVectorIndex, QdrantPostVectorIndex, SqlPostVectorIndex
from ghostwriter.services.analysis.service import AnalysisService
from ghostwriter.services.analysis.style_extractor import StyleExtractor
from ghostwriter.services.chat_service import ChatService
from ghostwriter.services.fact_validator import FactValidator
from ghostwriter.services.ingestion.apify_client import ApifyJobService
from ghostwriter.services.ingestion.service import IngestionService
from ghostwriter.services.linkedin_repository import LinkedInRepository
from ghostwriter.services.memory_service import MemoryService
from ghostwriter.services.memory_summarizer import MemorySummarizer
from ghostwriter.services.rag_retriever import RAGRetriever
from ghostwriter.services.style_profile_service import StyleProfileService
from ghostwriter.services.user_service import UserService

logger = structlog.get_logger(__name__)


class ServiceContainer:
    """Typed bundle of clients and services for one process."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        llm: LLMClient,
        embeddings: EmbeddingService,
        vector_index: BasePostVectorIndex,
        jobs: ApifyJobService,
        cache: Optional[StyleProfileCache],
        tasks: BackgroundTaskRunner,
    ):
        self.settings = settings
        self.database = database
        self.llm = llm
        self.embeddings = embeddings
        self.vector_index = vector_index
        self.jobs = jobs
        self.cache = cache
        self.tasks = tasks

        self.users = UserService(database)
        self.chats = ChatService(database)
        self.repository = LinkedInRepository(database)
        self.memory = MemoryService(database)
        self.styles = StyleProfileService(database, cache)

        self.summarizer = MemorySummarizer(llm, settings, self.memory, self.repository, self.styles)
        self.retriever = RAGRetriever(embeddings, vector_index, self.repository, settings.rag_top_k)
        self.validator = FactValidator(llm, settings)

        self.analysis = AnalysisService(
            settings=settings,
            repository=self.repository,
            vector_index=vector_index,
            embeddings=embeddings,
            extractor=StyleExtractor(llm, settings),
            style_service=self.styles,
            user_service=self.users,
            summarizer=self.summarizer,
            tasks=tasks,
        )
        self.ingestion = IngestionService(
            jobs=jobs,
            repository=self.repository,
            vector_index=vector_index,
            user_service=self.users,
            analysis=self.analysis,
            tasks=tasks,
        )
        self.orchestrator = GroundedChatOrchestrator(
            settings=settings,
            llm=llm,
            retriever=self.retriever,
            repository=self.repository,
            validator=self.validator,
        )

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        database: Optional[Database] = None,
        llm: Optional[LLMClient] = None,
        embeddings: Optional[EmbeddingService] = None,
        vector_index: Optional[BasePostVectorIndex] = None,
        jobs: Optional[ApifyJobService] = None,
        cache: Optional[StyleProfileCache] = None,
        apify_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceContainer":
        """Build the container from Settings; any collaborator may be supplied instead."""
        database = database or Database(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        embeddings = embeddings or EmbeddingService(settings)

        if vector_index is None:
            if settings.vector_backend == "qdrant":
                vector_index = QdrantPostVectorIndex(
                    settings.qdrant_url,
                    settings.qdrant_api_key,
                    settings.qdrant_collection_name,
                    embeddings.dimension,
                )
            else:
                vector_index = SqlPostVectorIndex(database)

        return cls(
            settings=settings,
            database=database,
            llm=llm or LLMClient(settings),
            embeddings=embeddings,
            vector_index=vector_index,
            jobs=jobs or ApifyJobService(settings, transport=apify_transport),
            cache=cache if cache is not None else StyleProfileCache(
                str(settings.redis_url), settings.style_cache_ttl_seconds
            ),
            tasks=BackgroundTaskRunner(),
        )

    async def startup(self) -> None:
        """Connect optional backends. Failures are logged; the app still starts."""
        try:
            await self.database.create_all()
        except Exception as e:
            logger.warning("Database initialization failed", error=str(e))

        if self.cache is not None:
            try:
                await self.cache.connect()
                logger.info("Redis connected")
            except Exception as e:
                logger.warning("Redis connection failed, style cache disabled", error=str(e))

        try:
            await self.vector_index.connect()
        except Exception as e:
            logger.warning("Vector index connection failed (RAG will be unavailable)", error=str(e))

    async def shutdown(self) -> None:
        await self.tasks.shutdown()
        if self.cache is not None:
            await self.cache.disconnect()
        await self.vector_index.close()
        await self.database.dispose()

"""
Application configuration using Pydantic Settings.
Loads from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Ghostwriter Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Database - Individual settings (recommended)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "ghostwriter"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"

    # Full SQLAlchemy URL; overrides the postgres_* fields when set
    database_url_override: Optional[str] = Field(default=None, alias="database_url")
    database_echo: bool = False

    # Database pool settings
    database_pool_size: int = 20
    database_max_overflow: int = 10

    @property
    def database_url(self) -> str:
        """Build database URL from individual components."""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_database}"

    # Redis
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    style_cache_ttl_seconds: int = 7 * 24 * 3600  # 7 days

    # LLM Providers
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""  # Gemini API key

    # Default LLM Provider: "openai", "anthropic", or "google"
    default_llm_provider: str = "openai"

    # LLM Model Configuration
    openai_model_primary: str = "gpt-4o"
    openai_model_fast: str = "gpt-4o-mini"
    anthropic_model_primary: str = "claude-3-5-sonnet-20241022"
    anthropic_model_fast: str = "claude-3-haiku-20240307"
    google_model_primary: str = "gemini-1.5-pro-latest"
    google_model_fast: str = "gemini-1.5-flash-latest"

    # LLM Settings
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4096
    llm_timeout: int = 60
    llm_max_retries: int = 3

    # Per-call temperatures
    classifier_temperature: float = 0.3
    validator_temperature: float = 0.3
    style_temperature: float = 0.3
    write_post_temperature: float = 0.7
    analyze_temperature: float = 0.5
    strategy_temperature: float = 0.7
    other_temperature: float = 0.7
    memory_temperature: float = 0.5

    # Embeddings - same model for corpus and query vectors
    embedding_provider: Literal["openai", "gemini"] = "openai"
    openai_embedding_model: str = "text-embedding-3-small"
    google_embedding_model: str = "models/embedding-001"

    # Post vector index: "database" scans post_embeddings, "qdrant" delegates search
    vector_backend: Literal["database", "qdrant"] = "database"
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str = ""
    qdrant_collection_name: str = "ghostwriter_posts"
    rag_top_k: int = 5

    # LinkedIn scraping (Apify actors)
    apify_api_token: str = ""
    apify_base_url: str = "https://api.apify.com/v2"
    apify_profile_actor: str = "apimaestro~linkedin-profile-detail"
    apify_posts_actor: str = "supreme_coder~linkedin-post"
    apify_posts_limit: int = 10
    apify_request_timeout: float = 30.0
    scrape_poll_interval_seconds: float = 2.0
    scrape_timeout_seconds: float = 300.0  # 5 minutes

    # Engagement & style analysis
    engagement_weight_likes: float = 1.0
    engagement_weight_comments: float = 2.0
    engagement_weight_shares: float = 3.0
    engagement_weight_impressions: float = 0.1
    high_performing_fraction: float = 0.3
    style_candidate_limit: int = 10
    min_high_performing_for_style: int = 5

    # Orchestration
    classifier_history_window: int = 5
    facts_history_window: int = 10
    max_follow_ups: int = 3
    strategy_high_performing_limit: int = 5
    turn_timeout_seconds: float = 180.0

    # Long-term memory
    memory_update_min_posts: int = 3
    memory_update_min_messages: int = 5
    memory_seed_max_attempts: int = 2

    # Authentication
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    dev_user_id: str = "dev-user-001"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Sentry (Error Tracking)
    sentry_dsn: str = ""
    sentry_environment: str = "development"
    sentry_traces_sample_rate: float = 0.1


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

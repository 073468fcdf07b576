from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for scripture_rag.

    All settings can be configured via environment variables or .env file.
    Nothing is required at import time; missing credentials surface as
    ConfigurationError when the component that needs them is used.
    """

    # Read from .env and ignore unknown vars
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Corpus store (Postgres + pgvector, read-only)
    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Postgres connection string for the verses / cross_references tables",
    )

    # Embedding provider (HuggingFace inference)
    hf_token: str | None = Field(default=None, alias="HF_TOKEN")
    hf_embedding_model: str = Field(
        default="intfloat/multilingual-e5-small",
        alias="HF_EMBEDDING_MODEL",
    )
    hf_endpoint_template: str = Field(
        default="https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction",
        alias="HF_ENDPOINT_TEMPLATE",
    )
    embedding_dim: int = Field(
        default=384,
        alias="EMBEDDING_DIM",
        description="Width of the stored verse embeddings (vector(384) column)",
    )
    embedding_timeout: float = Field(default=30.0, alias="EMBEDDING_TIMEOUT")

    # Text generation (Groq, OpenAI-compatible API)
    groq_api_key: str | None = Field(default=None, alias="GROQ_API_KEY")
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        alias="GROQ_BASE_URL",
    )
    chat_models: list[str] = Field(
        default=["llama-3.1-8b-instant", "llama-3.1-70b-versatile"],
        alias="CHAT_MODELS",
        description="Ordered model fallback list for /chat with the server key",
    )
    custom_key_chat_models: list[str] = Field(
        default=["llama-3.1-70b-versatile", "llama-3.1-8b-instant"],
        alias="CUSTOM_KEY_CHAT_MODELS",
        description="Ordered model fallback list when the caller supplies their own key",
    )
    suggestion_models: list[str] = Field(
        default=[
            "llama-3.1-8b-instant",
            "llama-3.1-70b-versatile",
            "llama3-8b-8192",
            "llama3-70b-8192",
        ],
        alias="SUGGESTION_MODELS",
        description="Ordered model list used to suggest references on the API path",
    )
    completion_temperature: float = Field(default=0.1, alias="COMPLETION_TEMPERATURE")
    completion_timeout: float = Field(default=30.0, alias="COMPLETION_TIMEOUT")

    # Retrieval settings
    default_translation: str = Field(default="WEB", alias="DEFAULT_TRANSLATION")
    vector_limit: int = Field(
        default=6,
        alias="VECTOR_LIMIT",
        description="Target number of primary verses before vector search is skipped",
    )
    short_query_threshold: int = Field(
        default=12,
        alias="SHORT_QUERY_THRESHOLD",
        description="Queries this short skip vector search when candidates already exist",
    )
    cross_reference_min_votes: int = Field(
        default=10,
        alias="CROSS_REFERENCE_MIN_VOTES",
        description="Cross-reference edges must have strictly more votes than this",
    )
    cross_reference_limit: int = Field(default=3, alias="CROSS_REFERENCE_LIMIT")
    min_api_candidates: int = Field(
        default=2,
        alias="MIN_API_CANDIDATES",
        description="Below this many verses the API path asks the model for references",
    )

    # Cache (Redis)
    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis URL; caching is disabled when unset",
    )
    context_cache_ttl: int = Field(default=3600, alias="CONTEXT_CACHE_TTL")
    embedding_cache_ttl: int = Field(default=604800, alias="EMBEDDING_CACHE_TTL")
    context_cache_version: str = Field(default="v2", alias="CONTEXT_CACHE_VERSION")

    # External verse / lexicon services
    helloao_base_url: str = Field(
        default="https://bible.helloao.org/api",
        alias="HELLOAO_BASE_URL",
    )
    bible_api_base_url: str = Field(
        default="https://bible-api.com",
        alias="BIBLE_API_BASE_URL",
    )
    bolls_base_url: str = Field(default="https://bolls.life", alias="BOLLS_BASE_URL")
    http_timeout: float = Field(default=10.0, alias="HTTP_TIMEOUT")

    # API Security
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        alias="CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins",
    )
    rate_limit_chat: str = Field(
        default="10/minute",
        alias="RATE_LIMIT_CHAT",
        description="Rate limit for /chat endpoint (e.g., 10/minute)",
    )
    rate_limit_context: str = Field(
        default="30/minute",
        alias="RATE_LIMIT_CONTEXT",
        description="Rate limit for /context endpoint",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def hf_endpoint(self) -> str:
        return self.hf_endpoint_template.format(model=self.hf_embedding_model)


settings = Settings()

"""
Matching Settings Models for Configuration Management
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from talent_match.utils.exceptions import ConfigurationError


class EmbeddingSettings(BaseModel):
    """Embedding Model Configuration"""
    model_name: str = Field(default="nomic-embed-text", description="Embedding model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    dimension: int = Field(default=768, ge=1, description="Embedding dimension")
    max_tokens: int = Field(default=2048, ge=1, description="Provider input token limit")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")


class LLMSettings(BaseModel):
    """LLM Judge Configuration"""
    model_name: str = Field(default="llama3.1:8b", description="LLM model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Generation temperature")
    timeout: int = Field(default=120, ge=1, le=600, description="Request timeout in seconds")


class ScoringWeights(BaseModel):
    """Multi-factor score weights"""
    semantic: float = Field(default=0.4, ge=0.0, le=1.0, description="Weight for vector similarity")
    skill: float = Field(default=0.3, ge=0.0, le=1.0, description="Weight for skill overlap")
    experience: float = Field(default=0.2, ge=0.0, le=1.0, description="Weight for experience-level match")
    location: float = Field(default=0.1, ge=0.0, le=1.0, description="Weight for location match")

    @model_validator(mode="after")
    def validate_total_weights(self):
        total = self.semantic + self.skill + self.experience + self.location
        if abs(total - 1.0) > 0.01:  # Allow small floating point errors
            raise ValueError('Scoring weights must sum to 1.0')
        return self


class RetrievalSettings(BaseModel):
    """Vector retrieval configuration"""
    max_top_k: int = Field(default=50, ge=1, le=50, description="Upper bound on neighbours per search")
    fallback_pool_size: int = Field(default=100, ge=1, le=1000, description="Records scored when retrieval is degraded")
    candidate_index_name: str = Field(default="candidate_embedding_index")
    job_index_name: str = Field(default="job_embedding_index")
    num_candidates_multiplier: int = Field(default=10, ge=1, description="ANN candidates examined per requested neighbour")


class RerankSettings(BaseModel):
    """LLM re-ranking configuration"""
    max_concurrent: int = Field(default=5, ge=1, le=20, description="Maximum concurrent judge requests")


class DatabaseSettings(BaseModel):
    """Document store configuration"""
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="talent_match_db")


class MatchingSettings(BaseModel):
    """Complete matching core configuration"""
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    rerank: RerankSettings = Field(default_factory=RerankSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    environment: str = "development"


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    return value if value not in (None, "") else default


def _env_number(key: str, default, cast):
    raw = os.getenv(key)
    if raw in (None, ""):
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {key}", config_key=key, config_value=raw, cause=e) from e


def load_settings() -> MatchingSettings:
    """Build settings from the environment (and .env when present)"""
    load_dotenv()

    ollama = _env("OLLAMA_BASE_URL", "http://localhost:11434")
    try:
        return MatchingSettings(
            embedding=EmbeddingSettings(
                model_name=_env("EMBED_MODEL", "nomic-embed-text"),
                base_url=ollama,
                dimension=_env_number("EMBED_DIMENSION", 768, int),
                max_tokens=_env_number("EMBED_MAX_TOKENS", 2048, int),
                timeout=_env_number("EMBED_TIMEOUT", 30, int),
            ),
            llm=LLMSettings(
                model_name=_env("LLM_MODEL", "llama3.1:8b"),
                base_url=ollama,
                temperature=_env_number("LLM_TEMPERATURE", 0.2, float),
                timeout=_env_number("LLM_TIMEOUT", 120, int),
            ),
            retrieval=RetrievalSettings(
                max_top_k=_env_number("MAX_TOP_K", 50, int),
                fallback_pool_size=_env_number("FALLBACK_POOL_SIZE", 100, int),
                candidate_index_name=_env("CANDIDATE_VECTOR_INDEX", "candidate_embedding_index"),
                job_index_name=_env("JOB_VECTOR_INDEX", "job_embedding_index"),
            ),
            rerank=RerankSettings(
                max_concurrent=_env_number("RERANK_MAX_CONCURRENT", 5, int),
            ),
            database=DatabaseSettings(
                mongo_details=_env("MONGO_DETAILS", "mongodb://localhost:27017"),
                db_name=_env("DB_NAME", "talent_match_db"),
            ),
            environment=_env("ENVIRONMENT", "development").lower(),
        )
    except ValueError as e:
        # pydantic.ValidationError subclasses ValueError
        raise ConfigurationError(f"Invalid matching settings: {e}", cause=e) from e

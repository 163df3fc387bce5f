"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="supportdesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/supportdesk",
        description="PostgreSQL connection URL (async, pgvector enabled)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== LLM Providers ==========
    llm_provider: str = Field(
        default="openai",
        description="Embedding/completion provider: openai, zai or mock"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    zai_api_key: Optional[str] = Field(default=None, description="Z.AI API key")
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used for answer generation"
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model used for chunks and queries"
    )
    embedding_dimension: int = Field(
        default=1536,
        description="Embedding vector dimension (must match stored chunks)",
        ge=128
    )

    # ========== Answer Generation ==========
    answer_temperature: float = Field(
        default=0.1,
        description="Sampling temperature for answer generation",
        ge=0.0,
        le=1.0
    )
    answer_max_tokens: int = Field(
        default=500,
        description="Token budget for a generated answer",
        ge=1,
        le=8000
    )
    rag_search_limit: int = Field(
        default=8,
        description="Number of chunks retrieved per question",
        ge=1,
        le=50
    )
    use_hybrid_search: bool = Field(
        default=True,
        description="Combine vector and keyword search by default"
    )

    # ========== Chunk Store ==========
    chunk_store_backend: str = Field(
        default="postgres",
        description="Chunk store backend: postgres (pgvector) or milvus"
    )
    zilliz_uri: str = Field(default="", description="Zilliz Cloud cluster URI")
    zilliz_api_key: str = Field(default="", description="Zilliz Cloud API key")
    milvus_collection_name: str = Field(
        default="content_chunks",
        description="Milvus collection name"
    )

    # ========== Escalation ==========
    escalation_confidence_threshold: float = Field(
        default=0.5,
        description="Answers below this confidence are offered human escalation",
        ge=0.0,
        le=1.0
    )
    escalation_plans: List[str] = Field(
        default=["enterprise"],
        description="Plans that include human escalation into tickets"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(default=None, description="Grafana OTLP gateway URL")
    grafana_api_key: Optional[str] = Field(default=None, description="Grafana API key")
    grafana_instance_id: Optional[str] = Field(default=None, description="Grafana instance ID")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        allowed = {"openai", "zai", "mock"}
        if v not in allowed:
            raise ValueError(f"llm_provider must be one of {allowed}")
        return v

    @field_validator("chunk_store_backend")
    @classmethod
    def validate_chunk_store_backend(cls, v: str) -> str:
        allowed = {"postgres", "milvus"}
        if v not in allowed:
            raise ValueError(f"chunk_store_backend must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class AssignmentMethod(str, Enum):
    """How a ticket owner was chosen."""
    LOAD_BALANCING = "load_balancing"
    ROUND_ROBIN = "round_robin"
    MANUAL = "manual"
    NONE = "none"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING_CUSTOMER = "waiting_customer"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priorities assigned at escalation."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MemberStatus(str, Enum):
    """Team membership statuses."""
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


# ========== Lists for validation ==========

# Statuses that count toward a member's workload
OPEN_TICKET_STATUSES = [
    TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.WAITING_CUSTOMER
]
AUTOMATIC_METHODS = [AssignmentMethod.LOAD_BALANCING, AssignmentMethod.ROUND_ROBIN]

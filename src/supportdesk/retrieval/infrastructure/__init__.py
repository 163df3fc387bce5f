"""
Retrieval Infrastructure Layer
==============================

Infrastructure implementations for the retrieval-answer engine.

Contains:
- Models: SQLAlchemy ORM models (content, chunks, queries)
- Repositories: pgvector chunk store and query log
- External: LLM provider adapter
"""

from supportdesk.retrieval.infrastructure.models import (
    ContentSourceModel,
    ChunkModel,
    QueryModel,
)
from supportdesk.retrieval.infrastructure.repositories import (
    SQLAlchemyChunkStore,
    SQLAlchemyQueryRepository,
)
from supportdesk.retrieval.infrastructure.external import LLMProviderAdapter

__all__ = [
    "ContentSourceModel",
    "ChunkModel",
    "QueryModel",
    "SQLAlchemyChunkStore",
    "SQLAlchemyQueryRepository",
    "LLMProviderAdapter",
]

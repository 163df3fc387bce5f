"""
Retrieval Application Layer
===========================

Application layer for the retrieval-answer engine.

Contains:
- Services: search, answer generation and RAG orchestration
- Interfaces: provider and store contracts
- DTOs: Data transfer objects for API serialization
"""

from supportdesk.retrieval.application.dto import (
    QueryRequest,
    QueryResponse,
    QueryStatsResponse,
    SourceInfo,
    QualityInfo,
    EscalationInfo,
)
from supportdesk.retrieval.application.services import (
    IEmbeddingProvider,
    ICompletionProvider,
    IChunkStore,
    IQueryRepository,
    RetrievalService,
    AnswerService,
    RAGService,
)

__all__ = [
    # DTOs
    "QueryRequest",
    "QueryResponse",
    "QueryStatsResponse",
    "SourceInfo",
    "QualityInfo",
    "EscalationInfo",
    # Interfaces
    "IEmbeddingProvider",
    "ICompletionProvider",
    "IChunkStore",
    "IQueryRepository",
    # Services
    "RetrievalService",
    "AnswerService",
    "RAGService",
]

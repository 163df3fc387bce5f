"""
Retrieval Controllers (API Routes)
==================================

FastAPI routes for the widget query endpoint and per-tenant query stats.

Controllers delegate to application services.
"""

import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.config import settings
from supportdesk.core import RAGGenerationError, RepositoryException
from supportdesk.infrastructure.database import get_session
from supportdesk.retrieval.application import (
    AnswerService,
    EscalationInfo,
    IChunkStore,
    QueryRequest,
    QueryResponse,
    QueryStatsResponse,
    RAGService,
    RetrievalService,
)
from supportdesk.retrieval.domain import EscalationPolicy, calculate_answer_quality
from supportdesk.retrieval.infrastructure import (
    LLMProviderAdapter,
    SQLAlchemyChunkStore,
    SQLAlchemyQueryRepository,
)
from supportdesk.shared.api.middleware import status_code_for
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/query", tags=["Retrieval"])


# ========== Example payloads for Swagger ==========

QUERY_RESPONSE_EXAMPLE = {
    "answer": "Refunds are available within 30 days of purchase [Source 1].",
    "confidence": 0.72,
    "status": "answered",
    "sources": [
        {"text": "Source 1", "url": "https://example.com/refunds", "similarity": 0.85}
    ],
    "quality": {"relevance": 0.85, "completeness": 0.8, "confidence": 0.83},
    "escalation": {"recommended": False, "priority": None, "ticket_title": None},
    "processing_time_ms": 1800
}


# ========== Dependencies ==========

def get_chunk_store(
    request: Request,
    db: AsyncSession = Depends(get_session)
) -> IChunkStore:
    """Chunk store for the configured backend."""
    if settings.chunk_store_backend == "milvus":
        store = getattr(request.app.state, "chunk_store", None)
        if store is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Vector store not initialized"
            )
        return store
    return SQLAlchemyChunkStore(db)


def get_rag_service(
    request: Request,
    chunk_store: IChunkStore = Depends(get_chunk_store)
) -> RAGService:
    """Build the RAG pipeline around the app's LLM client."""
    llm_client = getattr(request.app.state, "llm_client", None)
    if llm_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LLM client not configured"
        )

    provider = LLMProviderAdapter(llm_client)
    return RAGService(
        retrieval=RetrievalService(provider, chunk_store),
        answers=AnswerService(
            provider,
            temperature=settings.answer_temperature,
            max_tokens=settings.answer_max_tokens
        ),
        search_limit=settings.rag_search_limit
    )


def get_escalation_policy() -> EscalationPolicy:
    return EscalationPolicy(
        confidence_threshold=settings.escalation_confidence_threshold,
        escalation_plans=settings.escalation_plans
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=QueryResponse,
    summary="Answer a widget question (RAG)",
    description="""
    Answer a visitor question from the tenant's indexed content.

    The endpoint:
    1. Runs hybrid (vector + keyword) or vector-only search over the tenant's chunks
    2. Generates an answer grounded in the retrieved passages
    3. Scores confidence and recommends escalation when it is low and the plan allows

    Provider quota errors return 429, provider credential errors 503,
    invalid input 400, and search/provider outages 502.
    """,
    responses={
        200: {
            "description": "Answer generated",
            "content": {"application/json": {"example": QUERY_RESPONSE_EXAMPLE}}
        },
        429: {"description": "Provider quota exceeded"},
        503: {"description": "LLM not configured or provider credentials invalid"}
    }
)
async def answer_query(
    request: Request,
    payload: QueryRequest,
    db: AsyncSession = Depends(get_session),
    rag_service: RAGService = Depends(get_rag_service),
    policy: EscalationPolicy = Depends(get_escalation_policy)
):
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    use_hybrid = settings.use_hybrid_search if payload.use_hybrid is None else payload.use_hybrid

    logger.info(
        "Answering query",
        extra={
            "correlation_id": correlation_id,
            "website_id": payload.website_id,
            "use_hybrid": use_hybrid,
            "question_preview": payload.question[:100]
        }
    )

    try:
        response = await rag_service.generate_rag_response(
            payload.question,
            payload.website_id,
            use_hybrid=use_hybrid
        )
    except RAGGenerationError as e:
        code = status_code_for(e)
        logger.error(
            "Query failed",
            extra={
                "correlation_id": correlation_id,
                "website_id": payload.website_id,
                "status_code": code,
                "error": e.message
            }
        )
        detail = getattr(e.root_cause, "message", None) or e.message
        raise HTTPException(status_code=code, detail=detail) from e

    query_repo = SQLAlchemyQueryRepository(db)
    try:
        await query_repo.record(
            website_id=payload.website_id,
            question=payload.question,
            answer=response.answer,
            confidence=response.confidence
        )
    except RepositoryException as e:
        logger.warning(
            "Failed to record query",
            extra={"correlation_id": correlation_id, "error": e.message}
        )

    quality = calculate_answer_quality(response.sources, response.context)

    if policy.should_escalate(response.confidence, payload.plan):
        escalation = EscalationInfo(
            recommended=True,
            priority=policy.priority_for(response.confidence),
            ticket_title=policy.ticket_title(payload.question)
        )
    else:
        escalation = EscalationInfo(recommended=False)

    total_time = int((time.perf_counter() - start_time) * 1000)

    logger.info(
        "Query answered",
        extra={
            "correlation_id": correlation_id,
            "website_id": payload.website_id,
            "status": response.status.value,
            "confidence": response.confidence,
            "sources": len(response.sources),
            "escalation_recommended": escalation.recommended,
            "latency_ms": total_time
        }
    )

    return QueryResponse.build(response, quality, escalation, total_time)


@router.get(
    "/stats/{website_id}",
    response_model=QueryStatsResponse,
    summary="Get query statistics for a tenant",
    description="""
    Query volume and answer confidence for one tenant:
    - Number of answered queries and their average confidence
    - Queries below the escalation threshold
    - Chunks currently indexed for the tenant
    """
)
async def get_query_stats(
    website_id: str,
    db: AsyncSession = Depends(get_session),
    chunk_store: IChunkStore = Depends(get_chunk_store)
):
    query_repo = SQLAlchemyQueryRepository(db)
    stats = await query_repo.stats(website_id, settings.escalation_confidence_threshold)
    chunks_indexed = await chunk_store.count_chunks(website_id)

    return QueryStatsResponse(
        website_id=website_id,
        chunks_indexed=chunks_indexed,
        **stats
    )


# Export router for inclusion in main app
retrieval_router = router

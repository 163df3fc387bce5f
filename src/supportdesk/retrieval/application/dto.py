"""
Retrieval Application DTOs
==========================

Data Transfer Objects for the retrieval API layer.

Pydantic models for request/response validation.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from supportdesk.config import TicketPriority
from supportdesk.retrieval.domain import AnswerQuality, RAGResponse, ResponseStatus


# ========== Request DTOs ==========

class QueryRequest(BaseModel):
    """Request model for a widget question."""
    question: str = Field(..., min_length=1, description="Visitor question")
    website_id: str = Field(..., min_length=1, description="Tenant (website) ID")
    use_hybrid: Optional[bool] = Field(
        default=None,
        description="Combine vector and keyword search; defaults to server setting"
    )
    plan: Optional[str] = Field(
        default=None,
        description="Tenant plan, used to decide whether escalation is offered"
    )

    @field_validator("question")
    @classmethod
    def validate_question(cls, v: str) -> str:
        """Reject blank and oversized questions before they reach the provider."""
        v = v.strip()
        if not v:
            raise ValueError("Question must not be blank")
        if len(v) > 2000:
            raise ValueError("Question too long (max 2000 characters)")
        return v


# ========== Response DTOs ==========

class SourceInfo(BaseModel):
    """Source information in API response."""
    text: str
    url: Optional[str]
    similarity: float


class QualityInfo(BaseModel):
    """Retrieval quality breakdown."""
    relevance: float = Field(..., ge=0.0, le=1.0)
    completeness: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_domain(cls, quality: AnswerQuality) -> "QualityInfo":
        return cls(
            relevance=round(quality.relevance, 4),
            completeness=round(quality.completeness, 4),
            confidence=round(quality.confidence, 4)
        )


class EscalationInfo(BaseModel):
    """Whether the visitor should be offered a human follow-up."""
    recommended: bool
    priority: Optional[TicketPriority] = None
    ticket_title: Optional[str] = None


class QueryResponse(BaseModel):
    """Response model for a widget question."""
    answer: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    status: ResponseStatus
    sources: List[SourceInfo]
    quality: QualityInfo
    escalation: EscalationInfo
    processing_time_ms: int

    @classmethod
    def build(
        cls,
        response: RAGResponse,
        quality: AnswerQuality,
        escalation: EscalationInfo,
        processing_time_ms: int
    ) -> "QueryResponse":
        return cls(
            answer=response.answer,
            confidence=response.confidence,
            status=response.status,
            sources=[
                SourceInfo(text=s.text, url=s.url, similarity=s.similarity)
                for s in response.sources
            ],
            quality=QualityInfo.from_domain(quality),
            escalation=escalation,
            processing_time_ms=processing_time_ms
        )


class QueryStatsResponse(BaseModel):
    """Response model for per-tenant query statistics."""
    website_id: str
    total_queries: int
    average_confidence: float
    low_confidence_queries: int
    chunks_indexed: int

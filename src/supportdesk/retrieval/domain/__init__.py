"""
Retrieval Domain Layer
======================

Domain layer for the retrieval-answer engine.

Contains:
- Entities: SearchResult, SourceReference, AnswerResult, RAGResponse
- Scoring: ConfidenceScorer, AnswerQuality, EscalationPolicy
- Prompting: AnswerPromptBuilder

This layer is framework-agnostic and contains pure business logic.
"""

from supportdesk.retrieval.domain.entities import (
    KEYWORD_MATCH_SIMILARITY,
    NO_CONTEXT_ANSWER,
    EMPTY_ANSWER_FALLBACK,
    ResponseStatus,
    SearchResult,
    SourceReference,
    AnswerResult,
    RAGResponse,
    split_limit,
    merge_results,
    ConfidenceScorer,
    AnswerPromptBuilder,
    AnswerQuality,
    calculate_answer_quality,
    EscalationPolicy,
)

__all__ = [
    "KEYWORD_MATCH_SIMILARITY",
    "NO_CONTEXT_ANSWER",
    "EMPTY_ANSWER_FALLBACK",
    "ResponseStatus",
    "SearchResult",
    "SourceReference",
    "AnswerResult",
    "RAGResponse",
    "split_limit",
    "merge_results",
    "ConfidenceScorer",
    "AnswerPromptBuilder",
    "AnswerQuality",
    "calculate_answer_quality",
    "EscalationPolicy",
]

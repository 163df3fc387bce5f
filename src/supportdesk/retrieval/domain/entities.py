"""
Retrieval Domain Entities
=========================

Domain entities for the retrieval-answer engine.

Contains pure Python business objects for search results, generated
answers, confidence scoring and escalation rules.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from supportdesk.config import TicketPriority


# Fixed similarity given to full-text matches; they carry no semantic rank.
KEYWORD_MATCH_SIMILARITY = 0.5

VECTOR_SHARE = 0.7
KEYWORD_SHARE = 0.3

NO_CONTEXT_ANSWER = (
    "I don't have enough information to answer your question. "
    "Please make sure content has been uploaded and processed."
)

EMPTY_ANSWER_FALLBACK = "I cannot answer this question."


class ResponseStatus(str, Enum):
    """Which path produced a RAG response."""
    ANSWERED = "answered"
    NO_CONTEXT = "no_context"


@dataclass
class SearchResult:
    """
    A chunk returned by vector or keyword search.

    Ephemeral: produced by a search call and consumed by answer generation.
    """
    text: str
    source_url: Optional[str]
    similarity: float
    metadata: dict = field(default_factory=dict)


@dataclass
class SourceReference:
    """Source attached to an answer, positionally aligned with the ranking."""
    text: str
    url: Optional[str]
    similarity: float


@dataclass
class AnswerResult:
    """Answer text plus its heuristic confidence and positional sources."""
    answer: str
    confidence: float
    sources: List[str]


@dataclass
class RAGResponse:
    """
    Result of one retrieval-augmented query.

    ``status`` tells the caller whether an answer was generated or the
    tenant had no matching content.
    """
    answer: str
    confidence: float
    sources: List[SourceReference]
    context: List[str]
    status: ResponseStatus = ResponseStatus.ANSWERED

    @classmethod
    def no_context(cls) -> "RAGResponse":
        return cls(
            answer=NO_CONTEXT_ANSWER,
            confidence=0.0,
            sources=[],
            context=[],
            status=ResponseStatus.NO_CONTEXT
        )

    @property
    def has_context(self) -> bool:
        return self.status == ResponseStatus.ANSWERED


def split_limit(limit: int) -> tuple:
    """
    Split a hybrid search limit into (vector, keyword) candidate counts.

    Both shares are rounded up, so the two can sum to more than ``limit``;
    the merged list is truncated afterwards.
    """
    return math.ceil(limit * VECTOR_SHARE), math.ceil(limit * KEYWORD_SHARE)


def merge_results(
    vector_results: Sequence[SearchResult],
    keyword_results: Sequence[SearchResult],
    limit: int
) -> List[SearchResult]:
    """
    Merge vector and keyword hits.

    Exact text duplicates keep their first occurrence (vector hits come
    first), then the list is sorted by similarity and truncated. The sort is
    stable, so equal scores keep vector-first order.
    """
    seen = set()
    merged: List[SearchResult] = []
    for result in list(vector_results) + list(keyword_results):
        if result.text in seen:
            continue
        seen.add(result.text)
        merged.append(result)

    merged.sort(key=lambda r: r.similarity, reverse=True)
    return merged[:limit]


class ConfidenceScorer:
    """
    Heuristic confidence for a generated answer.

    Scores depend only on the answer text and the total length of the
    context it was generated from.
    """

    REFUSAL_PHRASES = ("I don't have enough information", "I cannot answer")

    REFUSAL_CONFIDENCE = 0.3
    THIN_CONTEXT_CONFIDENCE = 0.4
    SHORT_ANSWER_CONFIDENCE = 0.5
    BASE_CONFIDENCE = 0.6
    MAX_CONFIDENCE = 0.9

    THIN_CONTEXT_CHARS = 100
    SHORT_ANSWER_CHARS = 50
    CONTEXT_SCALE_CHARS = 10000
    CONTEXT_WEIGHT = 0.3

    @classmethod
    def is_refusal(cls, answer: str) -> bool:
        return any(phrase in answer for phrase in cls.REFUSAL_PHRASES)

    @classmethod
    def score(cls, answer: str, context: Sequence[str]) -> float:
        if cls.is_refusal(answer):
            return cls.REFUSAL_CONFIDENCE

        context_length = sum(len(passage) for passage in context)
        if context_length < cls.THIN_CONTEXT_CHARS:
            return cls.THIN_CONTEXT_CONFIDENCE

        if len(answer) < cls.SHORT_ANSWER_CHARS:
            return cls.SHORT_ANSWER_CONFIDENCE

        boost = (context_length / cls.CONTEXT_SCALE_CHARS) * cls.CONTEXT_WEIGHT
        return min(cls.MAX_CONFIDENCE, cls.BASE_CONFIDENCE + boost)

    @staticmethod
    def positional_sources(context: Sequence[str]) -> List[str]:
        """Label passages ``Source 1``, ``Source 2``, ... in context order."""
        return [f"Source {i}" for i in range(1, len(context) + 1)]


class AnswerPromptBuilder:
    """
    Builds prompts for grounded answer generation.

    All prompt text lives here.
    """

    SYSTEM_PROMPT = """You are a helpful AI assistant that answers questions based on the provided context.

Rules:
- Only use information from the provided context
- If the context doesn't contain enough information, say "I don't have enough information to answer this question"
- Be concise and helpful
- Always cite your sources when possible
- Never make up information that is not in the context
- If you're not confident in your answer, indicate this

Context: {context}"""

    @classmethod
    def build_system_prompt(cls, context: Sequence[str]) -> str:
        return cls.SYSTEM_PROMPT.format(context="\n\n".join(context))


@dataclass
class AnswerQuality:
    """Breakdown of how well the retrieved context supports an answer."""
    relevance: float
    completeness: float
    confidence: float


def calculate_answer_quality(
    sources: Sequence[SourceReference],
    context: Sequence[str]
) -> AnswerQuality:
    """
    Score retrieval quality for analytics.

    relevance is the mean source similarity (capped at 0.9, 0.3 when there
    are no sources); completeness grows with context length up to 0.9 at
    4500 characters (0.2 with no context).
    """
    if sources:
        mean_similarity = sum(s.similarity for s in sources) / len(sources)
        relevance = min(0.9, mean_similarity)
    else:
        relevance = 0.3

    if context:
        completeness = min(0.9, len("".join(context)) / 5000)
    else:
        completeness = 0.2

    return AnswerQuality(
        relevance=relevance,
        completeness=completeness,
        confidence=relevance * 0.6 + completeness * 0.4
    )


class EscalationPolicy:
    """
    Decides whether a low-confidence answer should become a support ticket.
    """

    MAX_TITLE_LENGTH = 100

    def __init__(self, confidence_threshold: float, escalation_plans: Sequence[str]):
        self._threshold = confidence_threshold
        self._plans = {plan.lower() for plan in escalation_plans}

    def plan_allows_escalation(self, plan: Optional[str]) -> bool:
        return bool(plan) and plan.lower() in self._plans

    def should_escalate(self, confidence: float, plan: Optional[str] = None) -> bool:
        """Escalate only below the threshold and only on eligible plans."""
        return confidence < self._threshold and self.plan_allows_escalation(plan)

    @staticmethod
    def priority_for(confidence: float) -> TicketPriority:
        if confidence < 0.3:
            return TicketPriority.HIGH
        if confidence < 0.5:
            return TicketPriority.MEDIUM
        return TicketPriority.LOW

    @classmethod
    def ticket_title(cls, question: str) -> str:
        if len(question) > cls.MAX_TITLE_LENGTH:
            return question[:cls.MAX_TITLE_LENGTH - 3] + "..."
        return question

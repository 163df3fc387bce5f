"""
Retrieval Application Services
===============================

Application services for search, answer generation and the RAG pipeline.

Orchestrates domain scoring between the embedding/completion provider and
the chunk store. Every collaborator is passed in through the constructor.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import List, Optional, Sequence

from supportdesk.core import RAGGenerationError, SearchBackendError
from supportdesk.retrieval.domain import (
    EMPTY_ANSWER_FALLBACK,
    KEYWORD_MATCH_SIMILARITY,
    AnswerPromptBuilder,
    AnswerResult,
    ConfidenceScorer,
    RAGResponse,
    SearchResult,
    SourceReference,
    merge_results,
    split_limit,
)
from supportdesk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Provider / Store Interfaces ==========

class IEmbeddingProvider(ABC):
    """Turns text into a fixed-dimension vector."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed text.

        Raises:
            EmbeddingProviderError: classified as quota/auth/bad request where possible
        """


class ICompletionProvider(ABC):
    """Generates text from a system prompt and a user message."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        max_tokens: int
    ) -> str:
        """
        Generate a completion.

        Raises:
            CompletionProviderError: classified as quota/auth/bad request where possible
        """


class IChunkStore(ABC):
    """Tenant-scoped chunk lookup."""

    @abstractmethod
    async def nearest_neighbors(
        self,
        website_id: str,
        vector: List[float],
        limit: int
    ) -> List[SearchResult]:
        """Chunks of the tenant ordered by descending cosine similarity."""

    @abstractmethod
    async def keyword_match(
        self,
        website_id: str,
        query: str,
        limit: int
    ) -> List[SearchResult]:
        """Chunks of the tenant matching the query terms."""

    @abstractmethod
    async def count_chunks(self, website_id: Optional[str] = None) -> int:
        """Number of indexed chunks, optionally for one tenant."""


class IQueryRepository(ABC):
    """Persistence of answered questions for analytics."""

    @abstractmethod
    async def record(
        self,
        website_id: str,
        question: str,
        answer: str,
        confidence: float
    ) -> None:
        """Store one answered question."""

    @abstractmethod
    async def stats(self, website_id: str, low_confidence_threshold: float) -> dict:
        """Return total_queries, average_confidence and low_confidence_queries."""


# ========== Application Services ==========

class RetrievalService:
    """
    Vector and hybrid search over a tenant's chunks.
    """

    def __init__(self, embedder: IEmbeddingProvider, chunk_store: IChunkStore):
        self._embedder = embedder
        self._store = chunk_store

    async def vector_search(
        self,
        query: str,
        website_id: str,
        limit: int = 10
    ) -> List[SearchResult]:
        """
        Embed the query and return the tenant's closest chunks.

        Raises:
            EmbeddingProviderError: If the query cannot be embedded
            SearchBackendError: If the chunk store lookup fails
        """
        vector = await self._embedder.embed(query)

        with log_latency(logger, "vector_search", website_id=website_id, limit=limit):
            try:
                results = await self._store.nearest_neighbors(website_id, vector, limit)
            except SearchBackendError:
                raise
            except Exception as e:
                raise SearchBackendError(f"Vector search failed: {e}") from e

        return sorted(results, key=lambda r: r.similarity, reverse=True)[:limit]

    async def hybrid_search(
        self,
        query: str,
        website_id: str,
        limit: int = 10
    ) -> List[SearchResult]:
        """
        Combine vector hits with keyword hits.

        Keyword failures are logged and the search continues with vector
        results only.
        """
        vector_limit, keyword_limit = split_limit(limit)

        vector_results = await self.vector_search(query, website_id, vector_limit)

        keyword_results: List[SearchResult] = []
        try:
            raw = await self._store.keyword_match(website_id, query, keyword_limit)
            keyword_results = [
                replace(result, similarity=KEYWORD_MATCH_SIMILARITY) for result in raw
            ]
        except Exception as e:
            logger.warning(
                "Keyword search failed, continuing with vector results",
                extra={"website_id": website_id, "error": str(e)}
            )

        merged = merge_results(vector_results, keyword_results, limit)

        logger.info(
            "Hybrid search completed",
            extra={
                "website_id": website_id,
                "vector_results": len(vector_results),
                "keyword_results": len(keyword_results),
                "results": len(merged)
            }
        )
        return merged


class AnswerService:
    """
    Service for grounded answer generation.

    Sampling is kept low-temperature with a fixed token budget.
    """

    def __init__(
        self,
        completion_provider: ICompletionProvider,
        temperature: float = 0.1,
        max_tokens: int = 500
    ):
        self._provider = completion_provider
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def generate_answer(self, question: str, context: Sequence[str]) -> AnswerResult:
        """
        Answer a question from the given passages.

        Args:
            question: The user's question
            context: Retrieved passage texts in ranking order

        Returns:
            AnswerResult with heuristic confidence and positional sources

        Raises:
            CompletionProviderError: If the provider call fails
        """
        start_time = time.perf_counter()
        system_prompt = AnswerPromptBuilder.build_system_prompt(context)

        answer = await self._provider.complete(
            system_prompt=system_prompt,
            user_message=question,
            temperature=self._temperature,
            max_tokens=self._max_tokens
        )
        if not answer:
            answer = EMPTY_ANSWER_FALLBACK

        confidence = ConfidenceScorer.score(answer, context)

        logger.info(
            "Answer generated",
            extra={
                "context_chunks": len(context),
                "context_length": sum(len(c) for c in context),
                "confidence": confidence,
                "latency_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )

        return AnswerResult(
            answer=answer,
            confidence=confidence,
            sources=ConfidenceScorer.positional_sources(context)
        )


class RAGService:
    """
    Service for retrieval-augmented answers.

    Orchestrates search and answer generation for one tenant.
    """

    def __init__(
        self,
        retrieval: RetrievalService,
        answers: AnswerService,
        search_limit: int = 8
    ):
        self._retrieval = retrieval
        self._answers = answers
        self._search_limit = search_limit

    async def generate_rag_response(
        self,
        question: str,
        website_id: str,
        use_hybrid: bool = True
    ) -> RAGResponse:
        """
        Answer a question against a tenant's content.

        When no chunk matches, the fixed no-context response is returned and
        the completion provider is never called.

        Raises:
            RAGGenerationError: Wrapping whatever failed, with the root cause kept
        """
        try:
            if use_hybrid:
                results = await self._retrieval.hybrid_search(question, website_id, self._search_limit)
            else:
                results = await self._retrieval.vector_search(question, website_id, self._search_limit)

            if not results:
                logger.info(
                    "No content matched question",
                    extra={"website_id": website_id, "use_hybrid": use_hybrid}
                )
                return RAGResponse.no_context()

            context = [result.text for result in results]
            answer = await self._answers.generate_answer(question, context)

            sources = [
                SourceReference(
                    text=answer.sources[i] if i < len(answer.sources) else f"Source {i + 1}",
                    url=result.source_url,
                    similarity=result.similarity
                )
                for i, result in enumerate(results)
            ]

            return RAGResponse(
                answer=answer.answer,
                confidence=answer.confidence,
                sources=sources,
                context=context
            )

        except Exception as e:
            logger.error(
                "RAG response failed",
                extra={
                    "website_id": website_id,
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )
            raise RAGGenerationError(e) from e

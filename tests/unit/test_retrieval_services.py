"""
Unit tests for search, answer generation and the RAG pipeline.
Providers and the chunk store are in-memory fakes.
"""
import pytest

from supportdesk.core import RAGGenerationError, SearchBackendError
from supportdesk.core.exceptions import CompletionQuotaExceeded, EmbeddingAuthError
from supportdesk.retrieval.application import AnswerService, RAGService, RetrievalService
from supportdesk.retrieval.domain import (
    EMPTY_ANSWER_FALLBACK,
    NO_CONTEXT_ANSWER,
    ResponseStatus,
)
from supportdesk.shared.api.middleware import status_code_for
from tests.fakes import FakeCompletion, FakeEmbedder, hit


def build_rag(embedder, completion, store, search_limit=8):
    return RAGService(
        retrieval=RetrievalService(embedder, store),
        answers=AnswerService(completion, temperature=0.1, max_tokens=500),
        search_limit=search_limit
    )


class TestVectorSearch:
    """Tests for RetrievalService.vector_search."""

    @pytest.mark.asyncio
    async def test_results_sorted_and_limited(self, embedder, make_store):
        store = make_store(vector_hits=[hit("a", 0.2), hit("b", 0.9), hit("c", 0.5)])
        service = RetrievalService(embedder, store)

        results = await service.vector_search("refunds?", "site-1", limit=2)

        assert [r.text for r in results] == ["b", "c"]
        assert embedder.calls == ["refunds?"]

    @pytest.mark.asyncio
    async def test_store_failure_becomes_search_backend_error(self, embedder, make_store):
        store = make_store(vector_error=RuntimeError("connection reset"))
        service = RetrievalService(embedder, store)

        with pytest.raises(SearchBackendError):
            await service.vector_search("refunds?", "site-1")

    @pytest.mark.asyncio
    async def test_embedding_error_propagates(self, make_store):
        embedder = FakeEmbedder(error=EmbeddingAuthError("bad key", status_code=401))
        service = RetrievalService(embedder, make_store())

        with pytest.raises(EmbeddingAuthError):
            await service.vector_search("refunds?", "site-1")


class TestHybridSearch:
    """Tests for RetrievalService.hybrid_search."""

    @pytest.mark.asyncio
    async def test_candidate_split(self, embedder, make_store):
        store = make_store()
        service = RetrievalService(embedder, store)

        await service.hybrid_search("refunds?", "site-1", limit=10)

        assert store.vector_limits == [7]
        assert store.keyword_limits == [3]

    @pytest.mark.asyncio
    async def test_keyword_similarity_is_fixed(self, embedder, make_store):
        store = make_store(
            vector_hits=[hit("vector hit", 0.8)],
            keyword_hits=[hit("keyword hit", 0.99)]
        )
        service = RetrievalService(embedder, store)

        results = await service.hybrid_search("refunds?", "site-1", limit=10)

        by_text = {r.text: r.similarity for r in results}
        assert by_text == {"vector hit": 0.8, "keyword hit": 0.5}

    @pytest.mark.asyncio
    async def test_no_duplicate_texts(self, embedder, make_store):
        store = make_store(
            vector_hits=[hit("same", 0.9), hit("other", 0.3)],
            keyword_hits=[hit("same", 0.5)]
        )
        service = RetrievalService(embedder, store)

        results = await service.hybrid_search("refunds?", "site-1", limit=10)

        texts = [r.text for r in results]
        assert len(texts) == len(set(texts))
        assert results[0].similarity == 0.9

    @pytest.mark.asyncio
    async def test_keyword_failure_falls_back_to_vector(self, embedder, make_store):
        store = make_store(
            vector_hits=[hit("vector hit", 0.8)],
            keyword_error=SearchBackendError("tsquery syntax error")
        )
        service = RetrievalService(embedder, store)

        results = await service.hybrid_search("refunds?", "site-1", limit=10)

        assert [r.text for r in results] == ["vector hit"]

    @pytest.mark.asyncio
    async def test_result_count_never_exceeds_limit(self, embedder, make_store):
        store = make_store(
            vector_hits=[hit(f"v{i}", 0.9) for i in range(10)],
            keyword_hits=[hit(f"k{i}", 0.5) for i in range(10)]
        )
        service = RetrievalService(embedder, store)

        assert len(await service.hybrid_search("q", "site-1", limit=5)) == 5


class TestAnswerService:
    """Tests for AnswerService.generate_answer."""

    @pytest.mark.asyncio
    async def test_prompt_and_sampling(self, completion):
        service = AnswerService(completion, temperature=0.1, max_tokens=500)

        result = await service.generate_answer("How do refunds work?", ["Refunds take 5 days."])

        call = completion.calls[0]
        assert call["user_message"] == "How do refunds work?"
        assert "Refunds take 5 days." in call["system_prompt"]
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 500
        assert result.sources == ["Source 1"]

    @pytest.mark.asyncio
    async def test_empty_completion_uses_fallback(self):
        service = AnswerService(FakeCompletion(answer=""))

        result = await service.generate_answer("q", ["x" * 500])

        assert result.answer == EMPTY_ANSWER_FALLBACK
        assert result.confidence == 0.3


class TestRAGService:
    """Tests for RAGService.generate_rag_response."""

    @pytest.mark.asyncio
    async def test_no_chunks_short_circuits(self, embedder, completion, make_store):
        rag = build_rag(embedder, completion, make_store())

        response = await rag.generate_rag_response("Anything?", "empty-site")

        assert response.status == ResponseStatus.NO_CONTEXT
        assert response.answer == NO_CONTEXT_ANSWER
        assert response.confidence == 0.0
        assert response.sources == []
        assert completion.calls == []

    @pytest.mark.asyncio
    async def test_answer_with_positional_sources(self, embedder, completion, make_store):
        store = make_store(vector_hits=[hit("x" * 4000, 0.85, "https://example.com/refunds")])
        rag = build_rag(embedder, completion, store)

        response = await rag.generate_rag_response(
            "What is your refund policy?", "site-1", use_hybrid=False
        )

        assert response.status == ResponseStatus.ANSWERED
        assert response.confidence == pytest.approx(0.72)
        assert len(response.sources) == 1
        assert response.sources[0].text == "Source 1"
        assert response.sources[0].url == "https://example.com/refunds"
        assert response.sources[0].similarity == 0.85
        assert response.context == ["x" * 4000]

    @pytest.mark.asyncio
    async def test_hybrid_is_default(self, embedder, completion, make_store):
        store = make_store(vector_hits=[hit("passage " * 20, 0.7)])
        rag = build_rag(embedder, completion, store, search_limit=8)

        await rag.generate_rag_response("q", "site-1")

        assert store.vector_limits == [6]
        assert store.keyword_limits == [3]

    @pytest.mark.asyncio
    async def test_completion_failure_is_wrapped(self, embedder, make_store):
        quota = CompletionQuotaExceeded("quota", status_code=429)
        store = make_store(vector_hits=[hit("passage " * 20, 0.7)])
        rag = build_rag(embedder, FakeCompletion(error=quota), store)

        with pytest.raises(RAGGenerationError) as exc_info:
            await rag.generate_rag_response("q", "site-1")

        assert exc_info.value.root_cause is quota
        assert exc_info.value.__cause__ is quota
        assert status_code_for(exc_info.value) == 429

    @pytest.mark.asyncio
    async def test_embedding_auth_failure_maps_to_503(self, completion, make_store):
        embedder = FakeEmbedder(error=EmbeddingAuthError("bad key", status_code=401))
        rag = build_rag(embedder, completion, make_store())

        with pytest.raises(RAGGenerationError) as exc_info:
            await rag.generate_rag_response("q", "site-1")

        assert status_code_for(exc_info.value) == 503
        assert completion.calls == []

"""
Unit tests for provider error classification and the LLM clients.
The OpenAI SDK client is replaced with mocks; no network calls are made.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from supportdesk.config import Settings
from supportdesk.core import (
    CompletionProviderError,
    ConfigurationException,
    EmbeddingProviderError,
    ProviderAuthError,
    ProviderBadRequest,
    ProviderQuotaExceeded,
    provider_error_for,
)
from supportdesk.core.exceptions import (
    CompletionAuthError,
    EmbeddingBadRequest,
    EmbeddingQuotaExceeded,
)
from supportdesk.infrastructure.llm import MockLLMClient, OpenAILLMClient, build_llm_client
from supportdesk.retrieval.infrastructure import LLMProviderAdapter


def api_status_error(error_cls, status_code: int, message: str):
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    response = httpx.Response(status_code, request=request)
    return error_cls(message, response=response, body=None)


class TestProviderErrorFor:
    """Tests for classifying provider failures by status code."""

    @pytest.mark.parametrize("stage,status_code,expected", [
        ("embedding", 429, EmbeddingQuotaExceeded),
        ("embedding", 400, EmbeddingBadRequest),
        ("completion", 401, CompletionAuthError),
    ])
    def test_classified(self, stage, status_code, expected):
        error = provider_error_for(stage, status_code, "raw message")

        assert type(error) is expected
        assert error.status_code == status_code
        assert error.details["stage"] == stage

    def test_quota_error_is_both_stage_and_kind(self):
        error = provider_error_for("embedding", 429, "limit")

        assert isinstance(error, EmbeddingProviderError)
        assert isinstance(error, ProviderQuotaExceeded)
        assert "quota exceeded" in error.message

    def test_bad_request_keeps_provider_message(self):
        error = provider_error_for("completion", 400, "input is empty")

        assert isinstance(error, ProviderBadRequest)
        assert "input is empty" in error.message

    def test_unclassified_status(self):
        error = provider_error_for("completion", 500, "upstream down")

        assert type(error) is CompletionProviderError
        assert not isinstance(error, (ProviderQuotaExceeded, ProviderAuthError, ProviderBadRequest))
        assert error.status_code == 500

    def test_missing_status(self):
        error = provider_error_for("embedding", None, "timeout")

        assert type(error) is EmbeddingProviderError
        assert error.status_code is None


class TestOpenAILLMClient:
    """Tests for OpenAILLMClient with a mocked SDK client."""

    @pytest.fixture
    def client(self):
        config = Settings(openai_api_key="sk-test", llm_provider="openai")
        client = OpenAILLMClient(config=config)
        client._client = MagicMock()
        return client

    def test_missing_key(self):
        with pytest.raises(ConfigurationException):
            OpenAILLMClient(config=Settings(openai_api_key=None))

    @pytest.mark.asyncio
    async def test_embedding(self, client):
        client._client.embeddings.create = AsyncMock(return_value=SimpleNamespace(
            data=[SimpleNamespace(embedding=[0.1, 0.2])],
            usage=SimpleNamespace(prompt_tokens=3)
        ))

        result = await client.generate_embedding("hello")

        assert result.embedding == [0.1, 0.2]
        assert result.dimension == 2
        assert result.prompt_tokens == 3

    @pytest.mark.asyncio
    async def test_embedding_rate_limit(self, client):
        client._client.embeddings.create = AsyncMock(
            side_effect=api_status_error(openai.RateLimitError, 429, "Rate limit reached")
        )

        with pytest.raises(EmbeddingQuotaExceeded) as exc_info:
            await client.generate_embedding("hello")

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_completion_auth_error(self, client):
        client._client.chat.completions.create = AsyncMock(
            side_effect=api_status_error(openai.AuthenticationError, 401, "Incorrect API key")
        )

        with pytest.raises(CompletionAuthError):
            await client.chat_completion([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_connection_error_is_unclassified(self, client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client._client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=request)
        )

        with pytest.raises(CompletionProviderError) as exc_info:
            await client.chat_completion([{"role": "user", "content": "hi"}])

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_completion(self, client):
        client._client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Refunds take 5 days."))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=6)
        ))

        result = await client.chat_completion(
            [{"role": "user", "content": "hi"}], temperature=0.1, max_tokens=500
        )

        assert result.content == "Refunds take 5 days."
        assert result.total_tokens == 126
        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 500


class TestMockLLMClient:

    @pytest.mark.asyncio
    async def test_embeddings_are_deterministic(self):
        client = MockLLMClient(dimension=8)

        first = await client.generate_embedding("refund policy")
        second = await client.generate_embedding("refund policy")
        other = await client.generate_embedding("shipping")

        assert first.embedding == second.embedding
        assert first.embedding != other.embedding
        assert first.dimension == 8

    def test_build_mock_client(self):
        client = build_llm_client(Settings(llm_provider="mock", embedding_dimension=128))
        assert isinstance(client, MockLLMClient)


class TestLLMProviderAdapter:

    @pytest.mark.asyncio
    async def test_complete_sends_system_and_user_messages(self):
        llm = MockLLMClient(dimension=8, answer="fixed answer")
        llm.chat_completion = AsyncMock(wraps=llm.chat_completion)
        adapter = LLMProviderAdapter(llm)

        answer = await adapter.complete("system text", "question", temperature=0.1, max_tokens=500)

        assert answer == "fixed answer"
        messages = llm.chat_completion.call_args.kwargs["messages"]
        assert messages == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "question"},
        ]

    @pytest.mark.asyncio
    async def test_embed_returns_vector(self):
        adapter = LLMProviderAdapter(MockLLMClient(dimension=4))
        assert len(await adapter.embed("hello")) == 4

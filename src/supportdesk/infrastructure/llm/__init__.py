"""
LLM Client Infrastructure
==========================

Wrapper for LLM providers (OpenAI, Z.AI) providing a clean interface for the
two calls the retrieval engine needs: embeddings and chat completions.

Provider failures are classified by HTTP status (429 quota, 401 credentials,
400 bad input) into the ProviderError family so the API layer can map them
to distinct responses. Nothing here retries: every call is billable.
"""

import hashlib
import random
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import openai
from openai import AsyncOpenAI
from zai import ZaiClient

from supportdesk.config import Settings, settings
from supportdesk.core import ConfigurationException, provider_error_for
from supportdesk.shared.infrastructure.grafana import get_grafana_exporter
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EmbeddingResult:
    """Result of an embedding generation."""

    def __init__(self, embedding: List[float], model: str, prompt_tokens: int = 0):
        self.embedding = embedding
        self.model = model
        self.dimension = len(embedding)
        self.prompt_tokens = prompt_tokens


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for text."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 500,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


async def _export_metrics(
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
    latency_ms: int,
    operation: str
) -> None:
    exporter = get_grafana_exporter()
    if exporter and exporter.is_enabled():
        await exporter.export_llm_metrics(
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            operation=operation
        )


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(self, api_key: Optional[str] = None, config: Optional[Settings] = None):
        config = config or settings
        self._api_key = api_key or config.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=self._api_key)
        self._model = config.llm_model
        self._embedding_model = config.embedding_model

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text using OpenAI embedding model.

        Raises:
            EmbeddingProviderError: classified by provider status code
        """
        start_time = time.perf_counter()
        try:
            response = await self._client.embeddings.create(
                model=self._embedding_model,
                input=text
            )
        except openai.APIStatusError as e:
            raise provider_error_for("embedding", e.status_code, e.message) from e
        except openai.OpenAIError as e:
            raise provider_error_for("embedding", None, str(e)) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        await _export_metrics(self._embedding_model, prompt_tokens, 0, latency_ms, "embedding")

        return EmbeddingResult(
            embedding=response.data[0].embedding,
            model=self._embedding_model,
            prompt_tokens=prompt_tokens
        )

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 500,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using OpenAI GPT.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation type for metrics

        Raises:
            CompletionProviderError: classified by provider status code
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except openai.APIStatusError as e:
            raise provider_error_for("completion", e.status_code, e.message) from e
        except openai.OpenAIError as e:
            raise provider_error_for("completion", None, str(e)) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        content = response.choices[0].message.content or ""
        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        completion_tokens = response.usage.completion_tokens if response.usage else 0

        await _export_metrics(self._model, prompt_tokens, completion_tokens, latency_ms, operation)

        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms
        )


class ZAIILLMClient(ILLMClient):
    """
    Z.AI SDK client implementation.

    The SDK is synchronous; calls block the event loop for their duration.
    """

    def __init__(self, api_key: Optional[str] = None, config: Optional[Settings] = None):
        config = config or settings
        self._api_key = api_key or config.zai_api_key
        if not self._api_key:
            raise ConfigurationException("Z.AI API key not configured")

        self._client = ZaiClient(api_key=self._api_key)
        self._model = config.llm_model
        self._embedding_model = config.embedding_model

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for text using the Z.AI embedding model."""
        try:
            response = self._client.embeddings.create(
                model=self._embedding_model,
                input=text
            )
        except Exception as e:
            raise provider_error_for("embedding", getattr(e, "status_code", None), str(e)) from e

        return EmbeddingResult(
            embedding=response.data[0].embedding,
            model=self._embedding_model
        )

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 500,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise provider_error_for("completion", getattr(e, "status_code", None), str(e)) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        content = response.choices[0].message.content or ""

        usage = getattr(response, "usage", None)
        if usage is not None:
            prompt_tokens = usage.prompt_tokens
            completion_tokens = usage.completion_tokens
        else:
            # Rough character-based estimate when usage is not reported
            prompt_tokens = len(str(messages)) // 4
            completion_tokens = len(content) // 4

        await _export_metrics(self._model, prompt_tokens, completion_tokens, latency_ms, operation)

        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local development and tests.

    Embeddings are deterministic pseudo-random vectors seeded from the text
    hash, so the same text always maps to the same vector.
    """

    def __init__(self, dimension: Optional[int] = None, answer: Optional[str] = None):
        self._dimension = dimension or settings.embedding_dimension
        self._answer = answer

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        embedding = [rng.uniform(-1, 1) for _ in range(self._dimension)]
        return EmbeddingResult(embedding=embedding, model="mock-embedding")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 500,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        if self._answer is not None:
            content = self._answer
        else:
            user_content = str(messages[-1].get("content", "")) if messages else ""
            content = (
                "Based on the provided context [Source 1], here is a summary: "
                + user_content[:200]
            )

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=0
        )


def build_llm_client(config: Optional[Settings] = None) -> ILLMClient:
    """
    Create the LLM client selected by ``llm_provider``.

    Raises:
        ConfigurationException: If the selected provider has no API key
    """
    config = config or settings
    provider = config.llm_provider

    logger.info("Creating LLM client", extra={"provider": provider, "model": config.llm_model})

    if provider == "openai":
        return OpenAILLMClient(config=config)
    if provider == "zai":
        return ZAIILLMClient(config=config)
    return MockLLMClient(dimension=config.embedding_dimension)


__all__ = [
    "EmbeddingResult",
    "ChatCompletionResult",
    "ILLMClient",
    "OpenAILLMClient",
    "ZAIILLMClient",
    "MockLLMClient",
    "build_llm_client",
]

"""
Retrieval External Service Adapters
===================================

Adapters for the LLM infrastructure used by the retrieval engine.

Implements the provider interfaces defined in the application layer using
the concrete infrastructure client.
"""

from typing import List

from supportdesk.infrastructure.llm import ILLMClient
from supportdesk.retrieval.application import ICompletionProvider, IEmbeddingProvider


class LLMProviderAdapter(IEmbeddingProvider, ICompletionProvider):
    """
    Adapter that wraps the infrastructure LLM client.

    One client serves both the embedding and the completion contract.
    """

    def __init__(self, client: ILLMClient):
        self._client = client

    async def embed(self, text: str) -> List[float]:
        result = await self._client.generate_embedding(text)
        return result.embedding

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        max_tokens: int
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message}
        ]
        response = await self._client.chat_completion(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            operation="rag_answer"
        )
        return response.content

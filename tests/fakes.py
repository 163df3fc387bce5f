"""
In-memory providers and chunk store for retrieval tests.
"""
from typing import List, Optional

from supportdesk.retrieval.application import (
    IChunkStore,
    ICompletionProvider,
    IEmbeddingProvider,
)
from supportdesk.retrieval.domain import SearchResult


class FakeEmbedder(IEmbeddingProvider):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error:
            raise self.error
        return [0.1, 0.2, 0.3]


class FakeCompletion(ICompletionProvider):
    def __init__(self, answer: str = "", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: List[dict] = []

    async def complete(self, system_prompt, user_message, temperature, max_tokens) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_message": user_message,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error:
            raise self.error
        return self.answer


class FakeChunkStore(IChunkStore):
    def __init__(
        self,
        vector_hits: Optional[List[SearchResult]] = None,
        keyword_hits: Optional[List[SearchResult]] = None,
        vector_error: Optional[Exception] = None,
        keyword_error: Optional[Exception] = None
    ):
        self.vector_hits = vector_hits or []
        self.keyword_hits = keyword_hits or []
        self.vector_error = vector_error
        self.keyword_error = keyword_error
        self.vector_limits: List[int] = []
        self.keyword_limits: List[int] = []

    async def nearest_neighbors(self, website_id, vector, limit):
        self.vector_limits.append(limit)
        if self.vector_error:
            raise self.vector_error
        ranked = sorted(self.vector_hits, key=lambda r: r.similarity, reverse=True)
        return ranked[:limit]

    async def keyword_match(self, website_id, query, limit):
        self.keyword_limits.append(limit)
        if self.keyword_error:
            raise self.keyword_error
        return self.keyword_hits[:limit]

    async def count_chunks(self, website_id=None):
        return len(self.vector_hits)


def hit(text: str, similarity: float, url: Optional[str] = None) -> SearchResult:
    return SearchResult(text=text, source_url=url, similarity=similarity)

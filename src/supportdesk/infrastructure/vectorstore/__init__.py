"""
Vector Store Infrastructure
============================

Milvus (Zilliz Cloud) chunk store, an alternative to the pgvector tables.

Each entity carries the chunk text, its tenant (website_id), the owning
content id and source URL next to the vector, so searches can be filtered
per tenant inside Milvus.
"""

from typing import List, Optional

from pymilvus import MilvusClient
from pymilvus.exceptions import MilvusException

from supportdesk.config import settings
from supportdesk.core import SearchBackendError, VectorStoreException
from supportdesk.retrieval.application import IChunkStore
from supportdesk.retrieval.domain import KEYWORD_MATCH_SIMILARITY, SearchResult
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_OUTPUT_FIELDS = ["text", "source_url", "content_id", "metadata"]


def _quote(value: str) -> str:
    """Quote a string literal for a Milvus filter expression."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _like_pattern(term: str) -> str:
    """Substring pattern for `like`; LIKE wildcards in the term match literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return _quote(f"%{escaped}%")


class MilvusChunkStore(IChunkStore):
    """
    Zilliz Cloud (Managed Milvus) implementation of the chunk store.

    The collection uses COSINE similarity, so a hit's distance is already a
    similarity score.
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        uri: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[MilvusClient] = None
    ):
        self._collection_name = collection_name or settings.milvus_collection_name
        self._dimension = settings.embedding_dimension
        self._uri = uri or settings.zilliz_uri
        self._api_key = api_key or settings.zilliz_api_key
        self._client = client
        self._initialized = False

    async def initialize(self) -> None:
        """Connect and create the collection if missing."""
        if self._initialized:
            return

        if self._client is None:
            if not self._uri or not self._api_key:
                raise VectorStoreException("ZILLIZ_URI and ZILLIZ_API_KEY must be configured")
            try:
                self._client = MilvusClient(uri=self._uri, token=self._api_key)
            except MilvusException as e:
                raise VectorStoreException(f"Failed to connect to Milvus: {e}") from e

        try:
            if not self._client.has_collection(self._collection_name):
                self._client.create_collection(
                    collection_name=self._collection_name,
                    dimension=self._dimension,
                    id_type="string",
                    max_length=64,
                    metric_type="COSINE",
                    enable_dynamic_field=True
                )
                logger.info(
                    "Milvus collection created",
                    extra={"collection": self._collection_name, "dimension": self._dimension}
                )
        except MilvusException as e:
            raise VectorStoreException(f"Failed to initialize Milvus: {e}") from e

        self._initialized = True

    async def nearest_neighbors(
        self,
        website_id: str,
        vector: List[float],
        limit: int
    ) -> List[SearchResult]:
        await self.initialize()

        try:
            results = self._client.search(
                collection_name=self._collection_name,
                data=[vector],
                filter=f"website_id == {_quote(website_id)}",
                limit=limit,
                output_fields=_OUTPUT_FIELDS
            )
        except MilvusException as e:
            raise SearchBackendError(f"Vector search failed: {e}") from e

        hits = results[0] if results else []
        return [
            SearchResult(
                text=hit["entity"]["text"],
                source_url=hit["entity"].get("source_url"),
                similarity=max(0.0, min(1.0, float(hit["distance"]))),
                metadata=hit["entity"].get("metadata") or {}
            )
            for hit in hits
        ]

    async def keyword_match(
        self,
        website_id: str,
        query: str,
        limit: int
    ) -> List[SearchResult]:
        """Chunks containing every query term (case-sensitive substring match)."""
        await self.initialize()

        terms = query.split()
        if not terms:
            return []

        clauses = [f"website_id == {_quote(website_id)}"]
        clauses.extend(f"text like {_like_pattern(term)}" for term in terms)

        try:
            rows = self._client.query(
                collection_name=self._collection_name,
                filter=" and ".join(clauses),
                output_fields=_OUTPUT_FIELDS,
                limit=limit
            )
        except MilvusException as e:
            raise SearchBackendError(f"Keyword search failed: {e}") from e

        return [
            SearchResult(
                text=row["text"],
                source_url=row.get("source_url"),
                similarity=KEYWORD_MATCH_SIMILARITY,
                metadata=row.get("metadata") or {}
            )
            for row in rows
        ]

    async def count_chunks(self, website_id: Optional[str] = None) -> int:
        await self.initialize()

        expr = f"website_id == {_quote(website_id)}" if website_id else ""
        try:
            rows = self._client.query(
                collection_name=self._collection_name,
                filter=expr,
                output_fields=["count(*)"]
            )
        except MilvusException as e:
            raise VectorStoreException(f"Failed to count chunks: {e}") from e

        return int(rows[0]["count(*)"]) if rows else 0

    async def delete_by_content(self, content_id: str) -> int:
        """Delete every chunk of one content source. Returns the number removed."""
        await self.initialize()

        try:
            result = self._client.delete(
                collection_name=self._collection_name,
                filter=f"content_id == {_quote(content_id)}"
            )
        except MilvusException as e:
            raise VectorStoreException(f"Failed to delete chunks: {e}") from e

        deleted = result.get("delete_count", 0) if isinstance(result, dict) else 0
        logger.info(
            "Chunks deleted from Milvus",
            extra={"content_id": content_id, "deleted": deleted}
        )
        return deleted


__all__ = ["MilvusChunkStore"]

"""
Retrieval Infrastructure Repositories
=====================================

SQLAlchemy implementations of the chunk store (PostgreSQL + pgvector) and
the query log.
"""

from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.core import RepositoryException, SearchBackendError
from supportdesk.retrieval.application import IChunkStore, IQueryRepository
from supportdesk.retrieval.domain import KEYWORD_MATCH_SIMILARITY, SearchResult
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SQLAlchemyChunkStore(IChunkStore):
    """
    pgvector implementation of the chunk store.

    Both lookups are scoped to the tenant through the owning content row.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def nearest_neighbors(
        self,
        website_id: str,
        vector: List[float],
        limit: int
    ) -> List[SearchResult]:
        from supportdesk.retrieval.infrastructure.models import ChunkModel, ContentSourceModel

        distance = ChunkModel.embedding.cosine_distance(vector).label("distance")
        stmt = (
            select(
                ChunkModel.text,
                ChunkModel.chunk_metadata,
                ContentSourceModel.source_url,
                distance
            )
            .join(ContentSourceModel, ChunkModel.content_id == ContentSourceModel.id)
            .where(ContentSourceModel.website_id == website_id)
            .where(ChunkModel.embedding.is_not(None))
            .order_by(distance)
            .limit(limit)
        )

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise SearchBackendError(f"Vector search failed: {e}") from e

        return [
            SearchResult(
                text=row.text,
                source_url=row.source_url,
                similarity=max(0.0, min(1.0, 1.0 - float(row.distance))),
                metadata=row.chunk_metadata or {}
            )
            for row in result.all()
        ]

    async def keyword_match(
        self,
        website_id: str,
        query: str,
        limit: int
    ) -> List[SearchResult]:
        """
        Postgres full-text match of the query terms.

        Runs inside a SAVEPOINT so a failed lookup leaves the request's
        transaction usable.
        """
        from supportdesk.retrieval.infrastructure.models import ChunkModel, ContentSourceModel

        matches = func.to_tsvector("english", ChunkModel.text).op("@@")(
            func.plainto_tsquery("english", query)
        )
        stmt = (
            select(ChunkModel.text, ChunkModel.chunk_metadata, ContentSourceModel.source_url)
            .join(ContentSourceModel, ChunkModel.content_id == ContentSourceModel.id)
            .where(ContentSourceModel.website_id == website_id)
            .where(matches)
            .limit(limit)
        )

        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise SearchBackendError(f"Keyword search failed: {e}") from e

        return [
            SearchResult(
                text=row.text,
                source_url=row.source_url,
                similarity=KEYWORD_MATCH_SIMILARITY,
                metadata=row.chunk_metadata or {}
            )
            for row in rows
        ]

    async def count_chunks(self, website_id: Optional[str] = None) -> int:
        from supportdesk.retrieval.infrastructure.models import ChunkModel, ContentSourceModel

        stmt = select(func.count(ChunkModel.id))
        if website_id is not None:
            stmt = stmt.join(
                ContentSourceModel, ChunkModel.content_id == ContentSourceModel.id
            ).where(ContentSourceModel.website_id == website_id)

        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def delete_by_content(self, content_id: str) -> int:
        """Delete every chunk of one content source. Returns the number removed."""
        from supportdesk.retrieval.infrastructure.models import ChunkModel

        stmt = delete(ChunkModel).where(ChunkModel.content_id == content_id)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount or 0


class SQLAlchemyQueryRepository(IQueryRepository):
    """SQLAlchemy implementation for the query log."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(
        self,
        website_id: str,
        question: str,
        answer: str,
        confidence: float
    ) -> None:
        from supportdesk.retrieval.infrastructure.models import QueryModel

        model = QueryModel(
            website_id=website_id,
            question=question,
            answer=answer,
            confidence=confidence
        )

        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to record query: {e}") from e

    async def stats(self, website_id: str, low_confidence_threshold: float) -> dict:
        from supportdesk.retrieval.infrastructure.models import QueryModel

        stmt = select(
            func.count(QueryModel.id),
            func.avg(QueryModel.confidence),
            func.count(QueryModel.id).filter(QueryModel.confidence < low_confidence_threshold)
        ).where(QueryModel.website_id == website_id)

        result = await self._session.execute(stmt)
        total, average, low = result.one()

        return {
            "total_queries": total or 0,
            "average_confidence": round(float(average), 4) if average is not None else 0.0,
            "low_confidence_queries": low or 0,
        }

"""
Retrieval Infrastructure Models
===============================

SQLAlchemy ORM models for ingested content, chunks and answered queries.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supportdesk.config import settings
from supportdesk.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentSourceModel(Base):
    """
    One ingested page or document of a tenant.

    Deleting a content source deletes its chunks.
    """
    __tablename__ = "content"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    website_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    source_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )

    chunks: Mapped[List["ChunkModel"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        passive_deletes=True
    )


class ChunkModel(Base):
    """
    Database model for an embedded text fragment.

    Every chunk compared in one search must use the same embedding model.
    """
    __tablename__ = "chunks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    content_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("content.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    embedding = mapped_column(Vector(settings.embedding_dimension), nullable=True)
    # "metadata" is reserved on declarative classes
    chunk_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )

    content: Mapped[ContentSourceModel] = relationship(back_populates="chunks")


class QueryModel(Base):
    """
    Database model for an answered widget question.

    Used for analytics only.
    """
    __tablename__ = "queries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    website_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )

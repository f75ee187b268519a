"""
docstore — Semantic Annotation Models
======================================

What:  ORM models for `semantic_terms`, `consistency_rules` and `analysis_cache`.

Referential integrity:
    semantic_terms.document_id and analysis_cache.document_id reference
    documents.id. SQLite enforces it (PRAGMA foreign_keys=ON, see database.py);
    PersistentStore.delete_document() removes dependents explicitly before the
    document row, inside the same transaction.
"""

from datetime import datetime
from typing import List

from sqlalchemy import (
    JSON,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from docstore.database import Base
from docstore.models.types import UTCDateTime


class SemanticTermRecord(Base):
    """An extracted term; read back ordered by position."""

    __tablename__ = "semantic_terms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id"), nullable=False
    )
    term: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_semantic_terms_document_id", "document_id"),
    )


class ConsistencyRuleRecord(Base):
    """
    Global terminology rule.

    `term` is UNIQUE: the store upserts on it, so saving a rule for an
    existing term updates that row and keeps its id.
    `alternatives` is a JSON array of strings.
    """

    __tablename__ = "consistency_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    term: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    preferred_form: Mapped[str] = mapped_column(Text, nullable=False)
    alternatives: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class AnalysisCacheRecord(Base):
    """Memoized analysis result; at most one row per (document_id, content_hash)."""

    __tablename__ = "analysis_cache"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id"), nullable=False
    )
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    analysis_result: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_analysis_cache_document_id", "document_id"),
        UniqueConstraint("document_id", "content_hash", name="uq_analysis_cache_document_hash"),
    )

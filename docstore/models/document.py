"""
docstore — Document SQLAlchemy Model
=====================================

What:  ORM model representing the `documents` table.
Who:   Used only inside PersistentStore; callers receive schemas.Document.

Table Design Rationale:
    - id: UUID4 text generated by the service (opaque to the store)
    - file_path: NULL for created and restored documents
    - created_at / updated_at: UTCDateTime text, see models/types.py
    - word_count: derived from content by the service; stored for listings

    Index on updated_at:
        list_documents() is ordered by updated_at DESC; that ordering is part
        of the contract, and this index serves it.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from docstore.database import Base
from docstore.models.types import UTCDateTime


class DocumentRecord(Base):
    """
    One document row.

    Lifecycle:
        1. Inserted by create / import / restore
        2. Overwritten in full by every update (last writer wins)
        3. Deleted together with its semantic_terms and analysis_cache rows
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    file_path: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Originating file for imported documents",
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_documents_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentRecord(id={self.id}, title='{self.title}', "
            f"updated_at='{self.updated_at}')>"
        )

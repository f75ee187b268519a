"""
docstore — Entity Schemas
==========================

What:  Pydantic models for the four persisted entity kinds.
How:   Every layer exchanges these values; ORM rows never leave the store.
       `model_config = {"from_attributes": True}` lets the store build them
       straight from SQLAlchemy rows with `model_validate(row)`.

Timestamps are timezone-aware and normalized to UTC on construction. A naive
datetime is rejected here, so the store never sees one from this path.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import AwareDatetime, BaseModel, Field, field_validator


_ONE_MICROSECOND = timedelta(microseconds=1)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def count_words(content: str) -> int:
    """Whitespace-delimited token count, the only definition of word_count."""
    return len(content.split())


class _TimestampedModel(BaseModel):
    """Shared UTC normalization for every `*_at` field."""

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at", check_fields=False)
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return v.astimezone(timezone.utc)


class Document(_TimestampedModel):
    """
    What:  A titled text artifact with derived word count and lifecycle timestamps.
    Invariant:
        word_count == count_words(content) at the time of the last write.
        Use Document.new() / with_changes() rather than setting it by hand.
    """

    id: str = Field(description="Opaque unique identifier (UUID4 text)")
    title: str = Field(description="Display title")
    content: str = Field(default="", description="Full text content")
    file_path: Optional[str] = Field(
        default=None,
        description="File the document was imported from; None for created/restored documents",
    )
    created_at: AwareDatetime = Field(description="Creation time (UTC)")
    updated_at: AwareDatetime = Field(description="Last modification time (UTC)")
    word_count: int = Field(default=0, ge=0, description="Whitespace token count of content")

    @field_validator("file_path")
    @classmethod
    def empty_path_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @classmethod
    def new(cls, title: str, content: str, file_path: Optional[str] = None) -> "Document":
        """Builds a fresh document with a new id and matching timestamps."""
        now = utc_now()
        return cls(
            id=new_id(),
            title=title,
            content=content,
            file_path=file_path,
            created_at=now,
            updated_at=now,
            word_count=count_words(content),
        )

    def with_changes(
        self,
        title: Optional[str] = None,
        content: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> "Document":
        """
        Partial update: only supplied fields change.

        word_count is recomputed only when content is supplied. updated_at is
        bumped past the previous value even if the clock did not move.
        """
        changes = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
            changes["word_count"] = count_words(content)

        bumped = updated_at or utc_now()
        if bumped <= self.updated_at:
            bumped = self.updated_at + _ONE_MICROSECOND
        changes["updated_at"] = bumped
        return self.model_copy(update=changes)


class SemanticTerm(_TimestampedModel):
    """
    What:  An extracted annotation tied to one document and a position in it.
    Read back ordered by `position`; the set is replaced wholesale per document.
    """

    id: str = Field(default_factory=new_id)
    document_id: str = Field(description="Owning document id")
    term: str = Field(description="Matched term text")
    context: str = Field(default="", description="Surrounding text")
    position: int = Field(description="Ordering key within the document")
    confidence: float = Field(ge=0.0, le=1.0, description="Match confidence in [0, 1]")
    created_at: AwareDatetime = Field(default_factory=utc_now)


class ConsistencyRule(_TimestampedModel):
    """
    What:  Global canonicalization mapping for one terminology term.
    At most one rule exists per distinct `term`; inactive rules are kept.
    """

    id: str = Field(default_factory=new_id)
    term: str = Field(min_length=1, description="Term text (unique across rules)")
    preferred_form: str = Field(description="Canonical spelling")
    alternatives: List[str] = Field(
        default_factory=list,
        description="Accepted alternative spellings",
    )
    is_active: bool = Field(default=True)
    created_at: AwareDatetime = Field(default_factory=utc_now)


class AnalysisCacheEntry(_TimestampedModel):
    """
    What:  Memoized analysis result keyed by (document_id, content_hash).
    Valid only while the document's current content hashes to content_hash;
    that comparison belongs to the service, the store matches exactly.
    """

    id: str = Field(default_factory=new_id)
    document_id: str
    content_hash: str = Field(min_length=1)
    analysis_result: str = Field(description="Opaque serialized analysis result")
    created_at: AwareDatetime = Field(default_factory=utc_now)

"""
docstore — Persistent Store
============================

What:  Durable CRUD for documents, semantic terms, consistency rules and
       analysis-cache entries, backed by one SQLite file.
How:   SQLAlchemy ORM. Every public method runs inside one `session_scope()`
       transaction, takes schemas in and hands schemas out; ORM records never
       escape this module.
Who:   Owned by StorageService (which serializes access with its store lock);
       also passed to FileVault.import_document / restore_from_backup.

Ordering contracts:
    list_documents()        updated_at DESC (ties broken by id)
    get_semantic_terms()    position ASC
    get_consistency_rules() term ASC, active rules only

Error Handling Strategy:
    SQLAlchemy failures are logged and re-raised as DatabaseError.
    Undecodable stored values surface as DataCorruptionError. A naive
    timestamp reaching the column type is a ValidationError. Absent rows are
    None / [] and never an exception.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

import pydantic
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError, StatementError
from sqlalchemy.orm import Session

from docstore.database import Base, create_db_engine, create_session_factory, session_scope
from docstore.exceptions import (
    DataCorruptionError,
    DatabaseError,
    DocStoreError,
    ValidationError,
)
from docstore.models import (
    AnalysisCacheRecord,
    ConsistencyRuleRecord,
    DocumentRecord,
    SemanticTermRecord,
)
from docstore.schemas.document import (
    AnalysisCacheEntry,
    ConsistencyRule,
    Document,
    SemanticTerm,
)

logger = logging.getLogger(__name__)


class PersistentStore:
    """
    Table-based storage for the four entity kinds.

    Not thread-safe on its own: callers must serialize access (StorageService
    holds its store lock around every call).
    """

    def __init__(self, db_path: Union[str, Path], echo: bool = False):
        """
        Open (and if needed create) the database at `db_path`.

        Raises:
            DatabaseError: the schema could not be created.
        """
        self.db_path = str(db_path)
        self._engine = create_db_engine(db_path, echo=echo)
        self._session_factory = create_session_factory(self._engine)

        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            logger.error("Failed to initialize database at %s: %s", self.db_path, str(e))
            raise DatabaseError(
                message=f"Failed to initialize database: {e.__class__.__name__}",
                context={"db_path": self.db_path, "error": str(e)},
            ) from e

        logger.info("PersistentStore opened at %s", self.db_path)

    # ── Unit of Work ──────────────────────────────────────────────────────

    @contextmanager
    def _unit_of_work(self, operation: str, **context) -> Iterator[Session]:
        """
        One transaction with error translation.

        Our own exceptions pass through unchanged; everything SQLAlchemy or
        pydantic raises is mapped onto the docstore hierarchy.
        """
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except DocStoreError:
            raise
        except StatementError as e:
            if isinstance(e.orig, DocStoreError):
                raise e.orig from e
            if isinstance(e.orig, (ValueError, TypeError)):
                raise ValidationError(
                    message=f"Failed to {operation}: {e.orig}",
                    context={**context, "error": str(e.orig)},
                ) from e
            logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Failed to {operation}: {e.orig or e.__class__.__name__}",
                context={**context, "error": str(e)},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Failed to {operation}",
                context={**context, "error": str(e)},
            ) from e
        except pydantic.ValidationError as e:
            logger.error("Stored row failed validation during %s: %s", operation, str(e))
            raise DataCorruptionError(
                message=f"Failed to {operation}: stored data is invalid",
                context={**context, "error": str(e)},
            ) from e

    # ── Documents ─────────────────────────────────────────────────────────

    def save_document(self, document: Document) -> None:
        """Upsert by id. Every column is overwritten (last writer wins)."""
        with self._unit_of_work("save document", document_id=document.id) as session:
            session.merge(DocumentRecord(**document.model_dump()))
        logger.debug("Document saved: %s (%d words)", document.id, document.word_count)

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._unit_of_work("get document", document_id=document_id) as session:
            record = session.get(DocumentRecord, document_id)
            return Document.model_validate(record) if record is not None else None

    def list_documents(self) -> List[Document]:
        """All documents, most recently updated first."""
        query = select(DocumentRecord).order_by(
            DocumentRecord.updated_at.desc(), DocumentRecord.id
        )
        with self._unit_of_work("list documents") as session:
            return [Document.model_validate(r) for r in session.scalars(query).all()]

    def count_documents(self) -> int:
        with self._unit_of_work("count documents") as session:
            return session.scalar(select(func.count(DocumentRecord.id))) or 0

    def delete_document(self, document_id: str) -> bool:
        """
        Delete a document and everything that references it.

        semantic_terms and analysis_cache rows go first, then the document
        row, in one transaction.

        Returns:
            True if a document row was removed, False if none existed.
        """
        with self._unit_of_work("delete document", document_id=document_id) as session:
            session.execute(
                delete(SemanticTermRecord).where(SemanticTermRecord.document_id == document_id)
            )
            session.execute(
                delete(AnalysisCacheRecord).where(AnalysisCacheRecord.document_id == document_id)
            )
            result = session.execute(
                delete(DocumentRecord).where(DocumentRecord.id == document_id)
            )
            deleted = (result.rowcount or 0) > 0

        logger.debug("Document delete %s: removed=%s", document_id, deleted)
        return deleted

    # ── Semantic Terms ────────────────────────────────────────────────────

    def save_semantic_terms(
        self,
        terms: Sequence[SemanticTerm],
        document_id: Optional[str] = None,
    ) -> None:
        """
        Replace the term set of every document the batch touches.

        Existing terms of each referenced document (and of `document_id`, so
        an empty batch clears that document) are deleted, then the batch is
        inserted. One transaction: either all of it lands or none of it does.
        """
        owners = {term.document_id for term in terms}
        if document_id is not None:
            owners.add(document_id)
        if not owners:
            return

        with self._unit_of_work(
            "save semantic terms", document_ids=sorted(owners), count=len(terms)
        ) as session:
            session.execute(
                delete(SemanticTermRecord).where(SemanticTermRecord.document_id.in_(owners))
            )
            session.add_all([SemanticTermRecord(**term.model_dump()) for term in terms])

        logger.debug("Saved %d semantic terms for %s", len(terms), sorted(owners))

    def get_semantic_terms(self, document_id: str) -> List[SemanticTerm]:
        query = (
            select(SemanticTermRecord)
            .where(SemanticTermRecord.document_id == document_id)
            .order_by(SemanticTermRecord.position, SemanticTermRecord.id)
        )
        with self._unit_of_work("get semantic terms", document_id=document_id) as session:
            return [SemanticTerm.model_validate(r) for r in session.scalars(query).all()]

    # ── Consistency Rules ─────────────────────────────────────────────────

    def save_consistency_rule(self, rule: ConsistencyRule) -> ConsistencyRule:
        """
        Upsert keyed by term.

        A rule whose term already exists updates that row in place (its id
        and created_at are kept); otherwise the rule is stored under its own id.

        Returns:
            The rule as persisted.
        """
        with self._unit_of_work("save consistency rule", term=rule.term) as session:
            record = session.scalars(
                select(ConsistencyRuleRecord).where(ConsistencyRuleRecord.term == rule.term)
            ).one_or_none()

            if record is None:
                record = session.get(ConsistencyRuleRecord, rule.id)
            if record is None:
                record = ConsistencyRuleRecord(id=rule.id, created_at=rule.created_at)
                session.add(record)

            record.term = rule.term
            record.preferred_form = rule.preferred_form
            record.alternatives = list(rule.alternatives)
            record.is_active = rule.is_active
            session.flush()
            return ConsistencyRule.model_validate(record)

    def get_consistency_rules(self) -> List[ConsistencyRule]:
        """Active rules only, ordered by term (code-point order)."""
        query = (
            select(ConsistencyRuleRecord)
            .where(ConsistencyRuleRecord.is_active.is_(True))
            .order_by(ConsistencyRuleRecord.term)
        )
        with self._unit_of_work("get consistency rules") as session:
            return [ConsistencyRule.model_validate(r) for r in session.scalars(query).all()]

    # ── Analysis Cache ────────────────────────────────────────────────────

    def save_analysis_cache(self, entry: AnalysisCacheEntry) -> None:
        """Upsert; replaces any row with the same id or the same (document, hash)."""
        with self._unit_of_work(
            "save analysis cache",
            document_id=entry.document_id,
            content_hash=entry.content_hash,
        ) as session:
            session.execute(
                delete(AnalysisCacheRecord).where(
                    or_(
                        AnalysisCacheRecord.id == entry.id,
                        and_(
                            AnalysisCacheRecord.document_id == entry.document_id,
                            AnalysisCacheRecord.content_hash == entry.content_hash,
                        ),
                    )
                )
            )
            session.add(AnalysisCacheRecord(**entry.model_dump()))

    def get_analysis_cache(
        self, document_id: str, content_hash: str
    ) -> Optional[AnalysisCacheEntry]:
        """Exact (document_id, content_hash) match or None."""
        query = select(AnalysisCacheRecord).where(
            AnalysisCacheRecord.document_id == document_id,
            AnalysisCacheRecord.content_hash == content_hash,
        )
        with self._unit_of_work("get analysis cache", document_id=document_id) as session:
            record = session.scalars(query).one_or_none()
            return AnalysisCacheEntry.model_validate(record) if record is not None else None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def close(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()
        logger.debug("PersistentStore closed: %s", self.db_path)

"""
docstore — Storage Service (Façade)
====================================

What:  The single entry point over the store, the file vault and the
       document cache. Enforces the policies neither of them knows about:
       cache coherence, backup-before-delete, term ownership.
How:   Owns one store lock and one DocumentCache (which owns the cache lock).
       Lock order is fixed: store, then cache. Document writes and cache
       fills happen while the store lock is still held, so no other command
       can commit between a store step and its cache update. The cache lock
       is never held while waiting for the store lock.
Who:   Built by docstore.main.create_storage_service(); called by
       docstore.commands.StorageCommands.

Document read/write paths:
    create_document   store.save ─▶ cache.put
    update_document   store.get ─▶ apply ─▶ store.save ─▶ cache.put
    get_document      cache.get ─(miss)─▶ store.get ─▶ cache.put
    list_documents    store.list (never the cache)
    delete_document   store.get ─▶ best-effort backup ─▶ store.delete ─▶ cache.evict

Only documents are cached. Terms, rules and analysis entries always go
straight to the store.
"""

import hashlib
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, TypeVar, Union

from docstore.exceptions import DocStoreError, NotFoundError, ValidationError
from docstore.schemas.document import (
    AnalysisCacheEntry,
    ConsistencyRule,
    Document,
    SemanticTerm,
)
from docstore.schemas.storage import FileInfo, ImportResult, StorageConfig, StorageStats
from docstore.services.document_cache import DocumentCache
from docstore.services.file_vault import BACKUPS_DIRNAME, DOCUMENTS_DIRNAME, FileVault
from docstore.services.locking import locked
from docstore.services.store import PersistentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
PathLike = Union[str, Path]

# 64-bit digest: a cache key, not an integrity check
CONTENT_HASH_DIGEST_SIZE = 8


class StorageService:
    """
    Authoritative façade for documents and their derived data.

    Thread-safe: any number of host threads may call into one instance.
    """

    def __init__(
        self,
        store: PersistentStore,
        vault: FileVault,
        cache: DocumentCache,
        config: StorageConfig,
        lock_timeout: float = 30.0,
    ):
        self._store = store
        self._vault = vault
        self._cache = cache
        self._config = config
        self._lock_timeout = lock_timeout
        self._store_lock = threading.Lock()

    # ── Internals ─────────────────────────────────────────────────────────

    @contextmanager
    def _store_access(self) -> Iterator[PersistentStore]:
        with locked(self._store_lock, "database", self._lock_timeout):
            yield self._store

    @staticmethod
    def _best_effort(description: str, action: Callable[[], T]) -> Optional[T]:
        """
        Run a side effect whose failure must never block the caller.

        Storage and I/O failures are logged at WARNING and discarded;
        returns None in that case.
        """
        try:
            return action()
        except (DocStoreError, OSError) as e:
            logger.warning("Best-effort %s failed: %s", description, str(e))
            return None

    def _require_document(self, document_id: str) -> Document:
        document = self.get_document(document_id)
        if document is None:
            raise NotFoundError(resource="document", resource_id=document_id)
        return document

    # ── Documents ─────────────────────────────────────────────────────────

    def create_document(self, title: str, content: str) -> str:
        """Persist a new document, cache it, return its id."""
        document = Document.new(title=title, content=content)
        with self._store_access() as store:
            store.save_document(document)
            self._cache.put(document)

        logger.info("Document created: %s (%d words)", document.id, document.word_count)
        return document.id

    def update_document(
        self,
        document_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Document:
        """
        Partial update read from the store, never the cache.

        Raises:
            NotFoundError: no document with that id.
        """
        with self._store_access() as store:
            current = store.get_document(document_id)
            if current is None:
                raise NotFoundError(resource="document", resource_id=document_id)
            updated = current.with_changes(title=title, content=content)
            store.save_document(updated)
            self._cache.put(updated)

        logger.info(
            "Document updated: %s (title=%s, content=%s)",
            document_id,
            title is not None,
            content is not None,
        )
        return updated

    def get_document(self, document_id: str) -> Optional[Document]:
        cached = self._cache.get(document_id)
        if cached is not None:
            return cached

        with self._store_access() as store:
            document = store.get_document(document_id)
            if document is not None:
                self._cache.put(document)
        return document

    def list_documents(self) -> List[Document]:
        with self._store_access() as store:
            return store.list_documents()

    def delete_document(self, document_id: str) -> bool:
        """
        Delete a document and its terms and analysis entries.

        A snapshot is written first; if that fails the delete still goes
        ahead. A missing document is not an error.

        Returns:
            True if a document was deleted.
        """
        with self._store_access() as store:
            current = store.get_document(document_id)
            if current is not None:
                self._best_effort(
                    f"backup of document {document_id} before delete",
                    lambda: self._vault.create_backup(current),
                )
            deleted = store.delete_document(document_id)
            self._cache.evict(document_id)

        logger.info("Document delete %s: removed=%s", document_id, deleted)
        return deleted

    # ── File Vault Delegations ────────────────────────────────────────────

    def import_document(self, file_path: PathLike) -> ImportResult:
        with self._store_access() as store:
            return self._vault.import_document(file_path, store)

    def export_document(self, document_id: str, export_path: PathLike) -> None:
        document = self._require_document(document_id)
        self._vault.export_document(document, export_path)

    def create_backup(self, document_id: str) -> str:
        document = self._require_document(document_id)
        return self._vault.create_backup(document)

    def list_backups(self) -> List[FileInfo]:
        return self._vault.list_backups()

    def restore_from_backup(self, backup_path: PathLike) -> ImportResult:
        with self._store_access() as store:
            return self._vault.restore_from_backup(backup_path, store)

    def get_file_info(self, file_path: PathLike) -> FileInfo:
        return self._vault.get_file_info(file_path)

    def prune_backups(self, keep: Optional[int] = None) -> List[str]:
        """
        Delete the oldest snapshots so at most `keep` remain.

        `keep` defaults to config.max_backups. Age is file modification time,
        then name (names embed the snapshot timestamp).

        Returns:
            Paths of the deleted snapshots, oldest first.
        """
        limit = self._config.max_backups if keep is None else keep
        if limit < 0:
            raise ValidationError(message="keep must be >= 0", field="keep")

        backups = sorted(self._vault.list_backups(), key=lambda f: (f.modified, f.name))
        excess = backups[: max(len(backups) - limit, 0)]
        for info in excess:
            self._vault.delete_file(info.path)

        if excess:
            logger.info("Pruned %d backup(s), %d kept", len(excess), len(backups) - len(excess))
        return [info.path for info in excess]

    # ── Semantic Terms / Rules / Analysis Cache ──────────────────────────

    def save_semantic_terms(self, document_id: str, terms: Sequence[SemanticTerm]) -> None:
        """
        Replace the term set of `document_id` with `terms`.

        Raises:
            ValidationError: a term belongs to another document.
        """
        foreign = [t.id for t in terms if t.document_id != document_id]
        if foreign:
            raise ValidationError(
                message=f"Semantic terms must belong to document '{document_id}'",
                field="document_id",
                context={"term_ids": foreign},
            )
        with self._store_access() as store:
            store.save_semantic_terms(terms, document_id=document_id)

    def get_semantic_terms(self, document_id: str) -> List[SemanticTerm]:
        with self._store_access() as store:
            return store.get_semantic_terms(document_id)

    def save_consistency_rule(self, rule: ConsistencyRule) -> ConsistencyRule:
        with self._store_access() as store:
            return store.save_consistency_rule(rule)

    def get_consistency_rules(self) -> List[ConsistencyRule]:
        with self._store_access() as store:
            return store.get_consistency_rules()

    def save_analysis_cache(self, entry: AnalysisCacheEntry) -> None:
        with self._store_access() as store:
            store.save_analysis_cache(entry)

    def get_analysis_cache(
        self, document_id: str, content_hash: str
    ) -> Optional[AnalysisCacheEntry]:
        with self._store_access() as store:
            return store.get_analysis_cache(document_id, content_hash)

    def get_cached_analysis(self, document_id: str) -> Optional[AnalysisCacheEntry]:
        """Analysis entry matching the document's current content, if any."""
        document = self.get_document(document_id)
        if document is None:
            return None
        return self.get_analysis_cache(
            document_id, self.calculate_content_hash(document.content)
        )

    @staticmethod
    def calculate_content_hash(content: str) -> str:
        """
        Fingerprint of `content` for analysis-cache keys.

        Stable across processes and runs. Not for security: a collision only
        costs a wrong cache hit.
        """
        digest = hashlib.blake2b(
            content.encode("utf-8"), digest_size=CONTENT_HASH_DIGEST_SIZE
        )
        return digest.hexdigest()

    # ── Diagnostics & Config ──────────────────────────────────────────────

    def get_storage_stats(self) -> StorageStats:
        with self._store_access() as store:
            documents = store.list_documents()
            database_path = store.db_path

        return StorageStats(
            total_documents=len(documents),
            total_words=sum(d.word_count for d in documents),
            total_characters=sum(len(d.content) for d in documents),
            cached_documents=self._cache.size(),
            cache_capacity=self._cache.capacity,
            database_path=database_path,
            app_data_dir=str(self._vault.app_data_dir),
            documents_dir=str(self._vault.app_data_dir / DOCUMENTS_DIRNAME),
            backups_dir=str(self._vault.app_data_dir / BACKUPS_DIRNAME),
        )

    def clear_document_cache(self) -> None:
        self._cache.clear()

    def get_cache_size(self) -> int:
        return self._cache.size()

    def get_config(self) -> StorageConfig:
        return self._config.model_copy()

    def update_config(self, config: StorageConfig) -> StorageConfig:
        """
        Replace the runtime config. The cache is resized immediately.

        Raises:
            ValidationError: app_data_dir differs (the vault cannot move).
        """
        if Path(config.app_data_dir).expanduser().resolve() != self._vault.app_data_dir:
            raise ValidationError(
                message="app_data_dir cannot be changed at runtime",
                field="app_data_dir",
                context={"current": str(self._vault.app_data_dir)},
            )
        self._cache.resize(config.document_cache_capacity)
        self._config = config.model_copy()

        logger.info(
            "Storage config updated: cache_capacity=%d max_backups=%d auto_save_interval=%d",
            config.document_cache_capacity,
            config.max_backups,
            config.auto_save_interval,
        )
        return self.get_config()

    def close(self) -> None:
        with self._store_access() as store:
            store.close()
        logger.info("StorageService closed")

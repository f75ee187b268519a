"""
docstore — In-Memory Document Cache
====================================

What:  A bounded, least-recently-used map from document id to the last-known
       Document value.
How:   OrderedDict in access order plus one lock; every public method takes
       the lock for its whole body and nothing else while holding it.
Who:   Owned by StorageService, which keeps it coherent with the store
       (write-through on create/update, eviction on delete).

Not authoritative: the store is the source of truth. A capacity of 0 turns
the cache into a no-op so every read goes to the store.
"""

import logging
import threading
from collections import OrderedDict
from typing import Optional

from docstore.schemas.document import Document
from docstore.services.locking import locked

logger = logging.getLogger(__name__)


class DocumentCache:
    """LRU cache of Document values with an explicit capacity."""

    def __init__(self, capacity: int = 256, lock_timeout: float = 30.0):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self._capacity = capacity
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Document]" = OrderedDict()

    def _locked(self):
        return locked(self._lock, "cache", self._lock_timeout)

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, document_id: str) -> Optional[Document]:
        """Cached value or None; a hit becomes most recently used."""
        with self._locked():
            document = self._entries.get(document_id)
            if document is not None:
                self._entries.move_to_end(document_id)
            return document

    def put(self, document: Document) -> None:
        """Insert or replace, then evict from the LRU end down to capacity."""
        with self._locked():
            if self._capacity == 0:
                return
            self._entries[document.id] = document
            self._entries.move_to_end(document.id)
            self._evict_overflow()

    def evict(self, document_id: str) -> bool:
        with self._locked():
            return self._entries.pop(document_id, None) is not None

    def clear(self) -> int:
        """Drop everything; returns how many entries were removed."""
        with self._locked():
            count = len(self._entries)
            self._entries.clear()
        logger.info("Document cache cleared (%d entries)", count)
        return count

    def resize(self, capacity: int) -> None:
        """Change capacity; shrinking evicts least recently used entries."""
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        with self._locked():
            self._capacity = capacity
            self._evict_overflow()

    def size(self) -> int:
        with self._locked():
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, document_id: object) -> bool:
        # Membership check only, does not touch recency
        with self._locked():
            return document_id in self._entries

    def _evict_overflow(self) -> None:
        # Caller holds the lock
        while len(self._entries) > self._capacity:
            evicted_id, _ = self._entries.popitem(last=False)
            logger.debug("Document cache evicted %s", evicted_id)

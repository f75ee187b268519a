"""
docstore — Lock Helper
=======================

What:  `locked()`, a context manager that takes a threading.Lock with a
       timeout and raises LockContentionError instead of blocking forever.

Rules the service follows with it:
    - lock order is store, then cache; the cache lock is never held while
      waiting for the store lock
    - neither lock is held while calling back into StorageService
    - a failed acquisition is reported, never retried here
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from docstore.exceptions import LockContentionError

logger = logging.getLogger(__name__)


@contextmanager
def locked(lock: threading.Lock, resource: str, timeout: float) -> Iterator[None]:
    if not lock.acquire(timeout=timeout):
        logger.warning("Timed out after %.1fs waiting for %s lock", timeout, resource)
        raise LockContentionError(resource=resource, timeout=timeout)
    try:
        yield
    finally:
        lock.release()

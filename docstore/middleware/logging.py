"""
docstore — Command Access Log
==============================

What:  One log line per dispatched command: name, outcome, duration.
How:   `CommandTimer` wraps a command body; StorageCommands reports the
       outcome on it and the line is written when the block exits.
Who:   Used by docstore.commands.StorageCommands for every method.

Log levels:
    ok                       → INFO
    DocStoreError / bad input → WARNING (the caller can act on it)
    unexpected exception     → ERROR (a bug; traceback logged separately)

What we log vs what we DON'T log:
    ✅ command name, outcome, duration, error message
    ❌ document content, analysis payloads
"""

import logging
import time
from typing import Optional

logger = logging.getLogger("docstore.access")

OUTCOME_OK = "ok"
OUTCOME_FAILED = "failed"
OUTCOME_ERROR = "error"

_LEVELS = {
    OUTCOME_OK: logging.INFO,
    OUTCOME_FAILED: logging.WARNING,
    OUTCOME_ERROR: logging.ERROR,
}


class CommandTimer:
    """
    Context manager timing one command.

    Usage:
        with CommandTimer("get_document") as timer:
            ...
            timer.fail("Document not found")
    """

    def __init__(self, name: str):
        self.name = name
        self.outcome = OUTCOME_OK
        self.error: Optional[str] = None
        self.duration_ms = 0.0
        self._start = 0.0

    def fail(self, error: str, unexpected: bool = False) -> None:
        self.outcome = OUTCOME_ERROR if unexpected else OUTCOME_FAILED
        self.error = error

    def __enter__(self) -> "CommandTimer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.duration_ms = (time.perf_counter() - self._start) * 1000
        if exc is not None and self.outcome == OUTCOME_OK:
            self.fail(str(exc), unexpected=True)

        if self.error:
            logger.log(
                _LEVELS[self.outcome],
                "%s %s %.1fms: %s",
                self.name,
                self.outcome,
                self.duration_ms,
                self.error,
            )
        else:
            logger.log(
                _LEVELS[self.outcome],
                "%s %s %.1fms",
                self.name,
                self.outcome,
                self.duration_ms,
            )
        return False

"""
docstore — Command ID Context
==============================

What:  Gives every dispatched command a short correlation id and makes it
       available to every log record emitted while the command runs.
How:   A ContextVar holds the id; CommandIdFilter copies it onto each
       LogRecord as `command_id` so the log format can print it.
Who:   `command_context()` is entered by StorageCommands for each call;
       the filter is installed by docstore.main.setup_logging().

Why a ContextVar and not threading.local: the host may dispatch commands
from worker threads or from an event loop; ContextVar covers both.
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# "-" outside of any command (startup, shutdown, tests calling services directly)
command_id_var: ContextVar[str] = ContextVar("command_id", default="-")


def new_command_id() -> str:
    # 8 chars is plenty for correlating lines of one process
    return uuid.uuid4().hex[:8]


@contextmanager
def command_context(command_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a command id for the duration of the block.

    A caller-supplied id (e.g. from the UI) is used as is, which lets a
    frontend action be traced into the storage logs.
    """
    cid = command_id or new_command_id()
    token = command_id_var.set(cid)
    try:
        yield cid
    finally:
        command_id_var.reset(token)


class CommandIdFilter(logging.Filter):
    """Adds `record.command_id`; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "command_id"):
            record.command_id = command_id_var.get()
        return True

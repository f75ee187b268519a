"""
docstore — Command Middleware
==============================

What:  Cross-cutting concerns applied to every command dispatched through
       docstore.commands, without repeating them in each command.

Chain (per command):
    command_context() → CommandTimer → service call → CommandResult

    1. command_context: binds the command id every log line will carry
    2. CommandTimer: measures the call and writes the access log line
"""

from docstore.middleware.command_id import (
    CommandIdFilter,
    command_context,
    command_id_var,
)
from docstore.middleware.logging import CommandTimer

__all__ = ["CommandIdFilter", "CommandTimer", "command_context", "command_id_var"]

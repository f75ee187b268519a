"""
docstore — Custom Exception Hierarchy
======================================

What:  Application-specific exceptions for the failure classes of the storage core.
How:   Each exception carries a user-facing message and an optional context dict.
       The command surface (docstore.commands) catches these and turns them
       into error strings, so nothing below it has to build result objects.
Who:   Raised by the store, the file vault and the storage service.

Exception Hierarchy:
    DocStoreError (base)
    ├── ValidationError          bad input the caller can fix
    ├── NotFoundError            update/export/backup of a missing document
    ├── FileStorageError         file read/write/metadata/delete failed
    ├── DatabaseError            query or transaction failed
    │   └── DataCorruptionError  a persisted value could not be decoded
    └── LockContentionError      store or cache lock could not be acquired

Plain "absent" results on reads (get_document, get_analysis_cache) are None,
not NotFoundError.
"""

from typing import Any, Dict, Optional


class DocStoreError(Exception):
    """
    Base exception for all docstore errors.

    Attributes:
        message:  User-facing error description (returned by the command surface)
        context:  Additional debug info (logged, never shown to the user)
    """

    def __init__(
        self,
        message: str = "An unexpected storage error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DocStoreError):
    """
    Raised when caller input fails validation.

    When:  Naive (timezone-less) timestamps, semantic terms that belong to a
           different document than the one being written, malformed command
           payloads.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(DocStoreError):
    """
    Raised when an operation needs a document that does not exist.

    Only the write-ish paths raise this (update, export, backup by id).
    Lookups return None instead.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource_id = resource_id


class FileStorageError(DocStoreError):
    """
    Raised when file system operations fail.

    What:  Could not read, write, stat, list or delete a file.
    Note:  Directory bootstrap never raises this; it logs and carries on.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(DocStoreError):
    """
    Raised when database operations fail.

    The message is kept short; the SQL error itself goes into `context`
    and the log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DataCorruptionError(DatabaseError):
    """
    Raised when a stored value cannot be decoded (e.g. a malformed timestamp).

    Never defaulted or skipped: a corrupt row fails the whole read.
    """

    def __init__(
        self,
        message: str = "Stored data is corrupted and could not be read.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LockContentionError(DocStoreError):
    """
    Raised when the store or cache lock cannot be acquired in time.

    The caller decides whether to retry; the service itself never does.
    """

    def __init__(
        self,
        resource: str = "storage",
        timeout: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"Failed to acquire {resource} lock"
        if timeout is not None:
            message = f"Failed to acquire {resource} lock within {timeout:g}s"
        ctx = context or {}
        ctx["resource"] = resource
        if timeout is not None:
            ctx["timeout"] = timeout
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.timeout = timeout

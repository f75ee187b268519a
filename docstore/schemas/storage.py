"""
docstore — Storage Result Schemas
==================================

What:  Pydantic models returned by file-vault and service-level operations:
       directory listings, import/restore outcomes, diagnostics, runtime config,
       and the command-surface result envelope.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class FileInfo(BaseModel):
    """One regular file as seen by list_directory() / get_file_info()."""

    name: str = Field(description="Base file name")
    path: str = Field(description="Absolute path")
    size: int = Field(ge=0, description="Size in bytes")
    modified: datetime = Field(description="Last modification time (UTC)")
    extension: Optional[str] = Field(default=None, description="Extension without the dot")


class ImportResult(BaseModel):
    """
    What:  Outcome of import_document() / restore_from_backup().
    A store failure is reported here (success=False), not raised.
    """

    success: bool
    document_id: Optional[str] = None
    message: str


class StorageStats(BaseModel):
    """Read-only diagnostic snapshot produced by get_storage_stats()."""

    total_documents: int
    total_words: int
    total_characters: int
    cached_documents: int
    cache_capacity: int
    database_path: str
    app_data_dir: str
    documents_dir: str
    backups_dir: str


class StorageConfig(BaseModel):
    """Runtime-tunable knobs owned by a StorageService instance."""

    app_data_dir: str
    auto_save_interval: int = Field(default=30, ge=5, le=3600)
    max_backups: int = Field(default=10, ge=1, le=1000)
    document_cache_capacity: int = Field(default=256, ge=0, le=100_000)


class CommandResult(BaseModel):
    """
    What:  Envelope returned by every command in docstore.commands.
    Exactly one of `value` (on success) or `error` (a human-readable string)
    is meaningful; `ok` says which.
    """

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "CommandResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "CommandResult":
        return cls(ok=False, error=error)

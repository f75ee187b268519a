from docstore.schemas.document import (
    AnalysisCacheEntry,
    ConsistencyRule,
    Document,
    SemanticTerm,
)
from docstore.schemas.storage import (
    CommandResult,
    FileInfo,
    ImportResult,
    StorageConfig,
    StorageStats,
)

__all__ = [
    "Document",
    "SemanticTerm",
    "ConsistencyRule",
    "AnalysisCacheEntry",
    "FileInfo",
    "ImportResult",
    "StorageStats",
    "StorageConfig",
    "CommandResult",
]

"""ORM models. Importing this package registers every table on Base.metadata."""

from docstore.models.document import DocumentRecord
from docstore.models.semantic import (
    AnalysisCacheRecord,
    ConsistencyRuleRecord,
    SemanticTermRecord,
)

__all__ = [
    "DocumentRecord",
    "SemanticTermRecord",
    "ConsistencyRuleRecord",
    "AnalysisCacheRecord",
]

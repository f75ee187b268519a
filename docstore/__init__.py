"""
docstore — Document Persistence & Caching Core
===============================================

What: Local storage for a writing assistant: documents, extracted semantic
      terms, terminology consistency rules and memoized analysis results,
      plus file import/export and backup snapshots.
Who:  Embedded by a host process (desktop shell, CLI) through
      docstore.commands.StorageCommands.

Architecture Note:
    ┌─────────────────────────────────────┐
    │      Commands (host contract)       │  ← plain args in, CommandResult out
    ├─────────────────────────────────────┤
    │      StorageService (façade)        │  ← cache coherence, backup-before-delete
    ├─────────────────────────────────────┤
    │  Store  │  File Vault  │  Cache     │  ← SQLite / filesystem / LRU
    ├─────────────────────────────────────┤
    │   Models & Schemas (data types)     │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"

"""
docstore — Test Configuration (conftest.py)
============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, fresh per test):
    app_dir ─┬─▶ vault ──┐
             └─▶ store ──┼─▶ service ─▶ commands
                 cache ──┘
    make_document: factory for Document values with explicit timestamps
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any docstore imports
# Why: the Settings singleton is built at import time and must never point at
# the real user data directory
os.environ["APP_DATA_DIR"] = tempfile.mkdtemp(prefix="docstore_test_")
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from docstore.commands import StorageCommands  # noqa: E402
from docstore.config import Settings  # noqa: E402
from docstore.schemas.document import Document, count_words, new_id  # noqa: E402
from docstore.services.document_cache import DocumentCache  # noqa: E402
from docstore.services.file_vault import FileVault  # noqa: E402
from docstore.services.storage_service import StorageService  # noqa: E402
from docstore.services.store import PersistentStore  # noqa: E402

BASE_TIME = datetime(2026, 10, 19, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def app_dir(tmp_path):
    """A fresh application data directory (not created yet; the vault does it)."""
    return tmp_path / "appdata"


@pytest.fixture
def settings(app_dir):
    return Settings(app_data_dir=str(app_dir), lock_timeout_seconds=0.2)


@pytest.fixture
def vault(app_dir):
    return FileVault(app_dir)


@pytest.fixture
def store(vault):
    """A PersistentStore on a real SQLite file inside app_dir."""
    store = PersistentStore(vault.database_path)
    yield store
    store.close()


@pytest.fixture
def cache():
    return DocumentCache(capacity=16, lock_timeout=0.2)


@pytest.fixture
def service(store, vault, cache, settings):
    return StorageService(
        store=store,
        vault=vault,
        cache=cache,
        config=settings.to_storage_config(),
        lock_timeout=5.0,
    )


@pytest.fixture
def commands(service):
    return StorageCommands(service)


@pytest.fixture
def make_document():
    """
    Factory for Document values with deterministic timestamps.

    Usage:
        doc = make_document("Notes", "hello world", minutes=5)
    """

    def _make(title="Untitled", content="", minutes=0, file_path=None):
        at = BASE_TIME + timedelta(minutes=minutes)
        return Document(
            id=new_id(),
            title=title,
            content=content,
            file_path=file_path,
            created_at=at,
            updated_at=at,
            word_count=count_words(content),
        )

    return _make

"""
docstore — Storage Service Tests
=================================

What:  Tests for the StorageService façade against a real store, vault and cache.
How:   Store-call counting wraps the real store in MagicMock(wraps=...); fault
       injection uses patch.object on the vault.

Test Strategy:
    ✅ Create/update/get/delete semantics and word counts
    ✅ Cache coherence: updates visible without a store round trip
    ✅ Backup-before-delete is best effort
    ✅ Export/backup resolve through the cache-aware read path
    ✅ Term ownership, analysis lookups by current content hash
    ✅ Stats, config updates, backup pruning, lock contention
    ✅ A cache fill paused mid-command cannot outlive a later commit
"""

import os
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from docstore.exceptions import (
    FileStorageError,
    LockContentionError,
    NotFoundError,
    ValidationError,
)
from docstore.main import create_storage_service
from docstore.schemas.document import AnalysisCacheEntry, ConsistencyRule, SemanticTerm
from docstore.services.document_cache import DocumentCache
from docstore.services.storage_service import StorageService


@pytest.fixture
def counted(store, vault, settings):
    """A service whose store is a call-counting spy around the real store."""
    spy = MagicMock(wraps=store)
    service = StorageService(
        store=spy,
        vault=vault,
        cache=DocumentCache(capacity=16),
        config=settings.to_storage_config(),
    )
    return service, spy


@pytest.fixture
def paused_first_put(cache):
    """
    Hold the first DocumentCache.put until the test sets `release`.

    Yields (entered, release): `entered` is set once the paused call has
    reached the cache.
    """
    entered = threading.Event()
    release = threading.Event()
    original_put = cache.put
    calls = []

    def put(document):
        calls.append(document.id)
        if len(calls) == 1:
            entered.set()
            release.wait(5)
        original_put(document)

    with patch.object(cache, "put", side_effect=put):
        yield entered, release
    release.set()


def _run_in_thread(errors, func, *args, **kwargs):
    def target():
        try:
            func(*args, **kwargs)
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    thread = threading.Thread(target=target)
    thread.start()
    return thread


class TestDocumentLifecycle:

    def test_notes_scenario(self, service, tmp_path):
        """Create, update content, export to markdown."""
        doc_id = service.create_document("Notes", "hello hello world")
        assert service.get_document(doc_id).word_count == 3

        updated = service.update_document(doc_id, content="one two three four")
        assert updated.word_count == 4
        assert updated.id == doc_id

        target = tmp_path / "notes.md"
        service.export_document(doc_id, target)
        assert target.read_text(encoding="utf-8").startswith("# Notes\n\n")

    def test_word_count_matches_whitespace_tokens(self, service):
        content = "  spaced\tout\n\nwords  here "
        doc_id = service.create_document("T", content)
        assert service.get_document(doc_id).word_count == len(content.split())

    def test_title_only_update_keeps_content(self, service):
        doc_id = service.create_document("Old", "some body text")
        before = service.get_document(doc_id)

        after = service.update_document(doc_id, title="New")

        assert after.title == "New"
        assert after.content == before.content
        assert after.word_count == before.word_count
        assert after.updated_at > before.updated_at
        assert after.created_at == before.created_at

    def test_content_only_update_keeps_title(self, service):
        doc_id = service.create_document("Keep", "a b")
        before = service.get_document(doc_id)

        after = service.update_document(doc_id, content="a b c d e")

        assert after.title == "Keep"
        assert after.word_count == 5
        assert after.updated_at > before.updated_at

    def test_update_unknown_document_raises(self, service):
        with pytest.raises(NotFoundError, match="was not found"):
            service.update_document("missing", title="x")

    def test_get_unknown_document_returns_none(self, service):
        assert service.get_document("missing") is None

    def test_list_reflects_store_not_cache(self, service, store, make_document):
        """Documents written straight to the store show up in listings."""
        outside = make_document("Outside", minutes=-10_000_000)
        store.save_document(outside)
        created = service.create_document("Inside", "x")

        listed = [d.id for d in service.list_documents()]
        assert listed == [created, outside.id]


class TestCacheCoherence:

    def test_get_after_update_needs_no_store_read(self, counted):
        service, spy = counted
        doc_id = service.create_document("Draft", "v1")
        service.update_document(doc_id, content="v2 is longer")
        spy.reset_mock()

        doc = service.get_document(doc_id)

        assert doc.content == "v2 is longer"
        assert spy.get_document.call_count == 0

    def test_update_reads_from_store_not_cache(self, counted):
        service, spy = counted
        doc_id = service.create_document("Draft", "v1")
        spy.reset_mock()

        service.update_document(doc_id, title="Final")
        assert spy.get_document.call_count == 1

    def test_miss_populates_cache(self, counted, store, make_document):
        service, spy = counted
        doc = make_document("Stored", "only in the store")
        store.save_document(doc)

        assert service.get_document(doc.id) == doc
        assert service.get_document(doc.id) == doc
        assert spy.get_document.call_count == 1

    def test_clear_cache_then_repopulate(self, counted):
        service, spy = counted
        doc_id = service.create_document("A", "b")
        service.clear_document_cache()
        assert service.get_cache_size() == 0

        service.get_document(doc_id)
        assert service.get_cache_size() == 1
        assert spy.get_document.call_count == 1


class TestDelete:

    def test_delete_removes_document_terms_and_analysis(self, service):
        doc_id = service.create_document("Doomed", "alpha beta")
        service.save_semantic_terms(
            doc_id, [SemanticTerm(document_id=doc_id, term="alpha", position=0, confidence=1)]
        )
        service.save_analysis_cache(
            AnalysisCacheEntry(document_id=doc_id, content_hash="h1", analysis_result="r")
        )

        assert service.delete_document(doc_id) is True

        assert service.get_document(doc_id) is None
        assert service.get_semantic_terms(doc_id) == []
        assert service.get_analysis_cache(doc_id, "h1") is None

    def test_delete_writes_backup_first(self, service):
        doc_id = service.create_document("Safety Net", "precious words")
        service.delete_document(doc_id)

        backups = service.list_backups()
        assert len(backups) == 1
        assert backups[0].name.startswith("Safety_Net_")
        assert Path(backups[0].path).read_text(encoding="utf-8").endswith("precious words")

    def test_backup_failure_does_not_block_delete(self, service, vault):
        doc_id = service.create_document("Fragile", "x")
        with patch.object(vault, "create_backup", side_effect=FileStorageError("disk full")):
            assert service.delete_document(doc_id) is True
        assert service.get_document(doc_id) is None

    def test_delete_missing_is_not_an_error(self, service):
        assert service.delete_document("missing") is False
        assert service.list_backups() == []


class TestVaultDelegation:

    def test_export_unknown_document_raises(self, service, tmp_path):
        with pytest.raises(NotFoundError):
            service.export_document("missing", tmp_path / "x.md")

    def test_backup_unknown_document_raises(self, service):
        with pytest.raises(NotFoundError):
            service.create_backup("missing")

    def test_backup_and_restore_round_trip(self, service):
        doc_id = service.create_document("Round Trip", "body\nwith lines")
        path = service.create_backup(doc_id)

        result = service.restore_from_backup(path)

        restored = service.get_document(result.document_id)
        assert restored.content == "body\nwith lines"
        assert restored.title == "Round Trip"
        assert restored.file_path is None
        assert restored.id != doc_id

    def test_import_document(self, service, tmp_path):
        source = tmp_path / "draft.md"
        source.write_text("imported words here", encoding="utf-8")

        result = service.import_document(source)

        doc = service.get_document(result.document_id)
        assert doc.title == "draft"
        assert doc.word_count == 3

    def test_prune_keeps_newest(self, service):
        doc_id = service.create_document("Pruned", "x")
        paths = [service.create_backup(doc_id) for _ in range(3)]
        for age, path in enumerate(paths):
            os.utime(path, (1_000_000 + age, 1_000_000 + age))

        deleted = service.prune_backups(keep=1)

        assert deleted == [str(Path(p).resolve()) for p in paths[:2]]
        remaining = service.list_backups()
        assert [b.path for b in remaining] == [str(Path(paths[2]).resolve())]

    def test_prune_defaults_to_max_backups(self, service):
        doc_id = service.create_document("Few", "x")
        service.create_backup(doc_id)
        assert service.prune_backups() == []


class TestSemanticData:

    def test_terms_are_ordered_by_position(self, service):
        doc_id = service.create_document("Terms", "a b c")
        service.save_semantic_terms(
            doc_id,
            [
                SemanticTerm(document_id=doc_id, term="late", position=2, confidence=0.4),
                SemanticTerm(document_id=doc_id, term="early", position=0, confidence=0.6),
            ],
        )
        assert [t.position for t in service.get_semantic_terms(doc_id)] == [0, 2]

    def test_terms_for_another_document_rejected(self, service):
        doc_id = service.create_document("Owner", "x")
        with pytest.raises(ValidationError, match="must belong"):
            service.save_semantic_terms(
                doc_id,
                [SemanticTerm(document_id="someone-else", term="t", position=0, confidence=1)],
            )

    def test_inactive_rules_never_returned(self, service):
        service.save_consistency_rule(ConsistencyRule(term="on", preferred_form="On"))
        service.save_consistency_rule(
            ConsistencyRule(term="off", preferred_form="Off", is_active=False)
        )
        assert [r.term for r in service.get_consistency_rules()] == ["on"]

    def test_analysis_lookup_with_uncached_hash_misses(self, service):
        doc_id = service.create_document("Analysed", "text")
        service.save_analysis_cache(
            AnalysisCacheEntry(document_id=doc_id, content_hash="hashB", analysis_result="r")
        )
        assert service.get_analysis_cache(doc_id, "hashA") is None

    def test_cached_analysis_follows_current_content(self, service):
        doc_id = service.create_document("Analysed", "first version")
        service.save_analysis_cache(
            AnalysisCacheEntry(
                document_id=doc_id,
                content_hash=service.calculate_content_hash("first version"),
                analysis_result="result-1",
            )
        )
        assert service.get_cached_analysis(doc_id).analysis_result == "result-1"

        service.update_document(doc_id, content="second version")
        assert service.get_cached_analysis(doc_id) is None
        assert service.get_cached_analysis("missing") is None


class TestContentHash:

    def test_hash_is_deterministic_and_short(self):
        first = StorageService.calculate_content_hash("same text")
        assert first == StorageService.calculate_content_hash("same text")
        assert len(first) == 16
        int(first, 16)

    def test_different_content_different_hash(self):
        assert StorageService.calculate_content_hash("a") != StorageService.calculate_content_hash("b")


class TestStatsAndConfig:

    def test_storage_stats(self, service, vault):
        service.create_document("One", "a b")
        service.create_document("Two", "c")
        cache_before = service.get_cache_size()

        stats = service.get_storage_stats()

        assert stats.total_documents == 2
        assert stats.total_words == 3
        assert stats.total_characters == 4
        assert stats.cached_documents == 2
        assert stats.database_path == str(vault.database_path)
        assert stats.backups_dir == str(vault.backups_dir)
        assert service.get_cache_size() == cache_before

    def test_storage_stats_creates_no_directories(self, service, vault):
        """Reporting directory paths does not create them."""
        stats = service.get_storage_stats()

        assert stats.documents_dir == str(vault.app_data_dir / "documents")
        assert not Path(stats.documents_dir).exists()
        assert not Path(stats.backups_dir).exists()

    def test_update_config_resizes_cache(self, service):
        for i in range(3):
            service.create_document(f"Doc {i}", "x")

        config = service.get_config().model_copy(update={"document_cache_capacity": 1})
        applied = service.update_config(config)

        assert applied.document_cache_capacity == 1
        assert service.get_cache_size() == 1

    def test_update_config_cannot_move_data_dir(self, service, tmp_path):
        config = service.get_config().model_copy(update={"app_data_dir": str(tmp_path / "elsewhere")})
        with pytest.raises(ValidationError, match="app_data_dir"):
            service.update_config(config)

    def test_get_config_returns_a_copy(self, service):
        config = service.get_config()
        config.max_backups = 999
        assert service.get_config().max_backups != 999


class TestConcurrency:

    def test_held_store_lock_raises_contention_error(self, store, vault, cache, settings):
        service = StorageService(
            store=store,
            vault=vault,
            cache=cache,
            config=settings.to_storage_config(),
            lock_timeout=0.05,
        )
        service._store_lock.acquire()
        try:
            with pytest.raises(LockContentionError, match="database lock"):
                service.list_documents()
        finally:
            service._store_lock.release()

    def test_parallel_creates_all_persist(self, service):
        ids = []
        errors = []

        def worker(n):
            try:
                ids.append(service.create_document(f"Doc {n}", "word " * n))
            except Exception as e:  # noqa: BLE001 - surfaced via the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(service.list_documents()) == 8
        assert {d.id for d in service.list_documents()} == set(ids)

    def test_slow_cache_fill_cannot_resurrect_deleted_document(
        self, service, store, make_document, paused_first_put
    ):
        """A get_document miss paused before its cache fill, racing a delete."""
        entered, release = paused_first_put
        doc = make_document("Ghost", "boo")
        store.save_document(doc)
        errors = []

        reader = _run_in_thread(errors, service.get_document, doc.id)
        assert entered.wait(5)
        deleter = _run_in_thread(errors, service.delete_document, doc.id)
        deleter.join(timeout=0.2)
        release.set()
        reader.join(5)
        deleter.join(5)

        assert errors == []
        assert store.get_document(doc.id) is None
        assert service.get_document(doc.id) is None

    def test_racing_updates_leave_cache_matching_store(
        self, service, store, make_document, paused_first_put
    ):
        """The update that commits last is the one the cache holds."""
        entered, release = paused_first_put
        doc = make_document("Shared", "v0")
        store.save_document(doc)
        errors = []

        first = _run_in_thread(errors, service.update_document, doc.id, content="from A")
        assert entered.wait(5)
        second = _run_in_thread(errors, service.update_document, doc.id, content="from B")
        second.join(timeout=0.2)
        release.set()
        first.join(5)
        second.join(5)

        assert errors == []
        assert store.get_document(doc.id).content == "from B"
        assert service.get_document(doc.id).content == "from B"


class TestBootstrap:

    def test_create_storage_service_from_settings(self, settings):
        service = create_storage_service(settings)
        try:
            doc_id = service.create_document("Boot", "strapped")
            assert service.get_document(doc_id).title == "Boot"
            assert Path(settings.app_data_dir, "semantic_assistant.db").exists()
        finally:
            service.close()

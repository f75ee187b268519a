"""
docstore — Command Surface
===========================

What:  The contract consumed by the host (desktop shell, IPC bridge, CLI):
       one method per storage operation, plain serializable arguments in,
       a CommandResult out.
How:   Each method parses its payloads into schemas, calls StorageService,
       and converts the outcome. Success values are JSON-ready
       (`model_dump(mode="json")`); failures become a human-readable string.
Who:   Built around a StorageService from docstore.main.create_storage_service().

Error mapping:
    DocStoreError subclasses   → error = exc.message
    pydantic.ValidationError   → error = "Invalid <payload>: <field>: <reason>"
    anything else              → generic message, traceback logged at ERROR

A command never raises; the host always gets a CommandResult.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import pydantic
from pydantic import BaseModel

from docstore.exceptions import DocStoreError
from docstore.middleware import CommandTimer, command_context
from docstore.schemas.document import AnalysisCacheEntry, ConsistencyRule, SemanticTerm
from docstore.schemas.storage import CommandResult, StorageConfig
from docstore.services.storage_service import StorageService

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected storage error occurred. Please try again."


def to_jsonable(value: Any) -> Any:
    """Pydantic models (and lists of them) to plain JSON types."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    return value


def describe_validation_error(payload: str, exc: pydantic.ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or payload
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return f"Invalid {payload}: " + "; ".join(problems)


class StorageCommands:
    """Command dispatch table over one StorageService."""

    def __init__(self, service: StorageService):
        self.service = service

    def _dispatch(
        self,
        name: str,
        action: Callable[[], Any],
        payload: str = "input",
    ) -> CommandResult:
        with command_context(), CommandTimer(name) as timer:
            try:
                return CommandResult.success(to_jsonable(action()))
            except DocStoreError as e:
                logger.debug("%s failed: %s | Context: %s", name, e.message, e.context)
                timer.fail(e.message)
                return CommandResult.failure(e.message)
            except pydantic.ValidationError as e:
                message = describe_validation_error(payload, e)
                timer.fail(message)
                return CommandResult.failure(message)
            except Exception as e:
                logger.error("Unexpected error in %s: %s", name, str(e), exc_info=True)
                timer.fail(str(e), unexpected=True)
                return CommandResult.failure(UNEXPECTED_ERROR_MESSAGE)

    # ── Documents ─────────────────────────────────────────────────────────

    def create_document(self, title: str, content: str) -> CommandResult:
        return self._dispatch(
            "create_document", lambda: self.service.create_document(title, content)
        )

    def update_document(
        self,
        document_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> CommandResult:
        return self._dispatch(
            "update_document",
            lambda: self.service.update_document(document_id, title=title, content=content),
        )

    def get_document(self, document_id: str) -> CommandResult:
        return self._dispatch("get_document", lambda: self.service.get_document(document_id))

    def list_documents(self) -> CommandResult:
        return self._dispatch("list_documents", self.service.list_documents)

    def delete_document(self, document_id: str) -> CommandResult:
        return self._dispatch("delete_document", lambda: self.service.delete_document(document_id))

    # ── Files & Backups ───────────────────────────────────────────────────

    def import_document(self, file_path: str) -> CommandResult:
        return self._dispatch(
            "import_document", lambda: self.service.import_document(file_path)
        )

    def export_document(self, document_id: str, export_path: str) -> CommandResult:
        return self._dispatch(
            "export_document", lambda: self.service.export_document(document_id, export_path)
        )

    def create_backup(self, document_id: str) -> CommandResult:
        return self._dispatch("create_backup", lambda: self.service.create_backup(document_id))

    def list_backups(self) -> CommandResult:
        return self._dispatch("list_backups", self.service.list_backups)

    def restore_from_backup(self, backup_path: str) -> CommandResult:
        return self._dispatch(
            "restore_from_backup", lambda: self.service.restore_from_backup(backup_path)
        )

    def prune_backups(self, keep: Optional[int] = None) -> CommandResult:
        return self._dispatch("prune_backups", lambda: self.service.prune_backups(keep))

    def get_file_info(self, file_path: str) -> CommandResult:
        return self._dispatch("get_file_info", lambda: self.service.get_file_info(file_path))

    # ── Semantic Terms / Rules / Analysis Cache ──────────────────────────

    def save_semantic_terms(
        self, document_id: str, terms: List[Dict[str, Any]]
    ) -> CommandResult:
        return self._dispatch(
            "save_semantic_terms",
            lambda: self.service.save_semantic_terms(
                document_id, [SemanticTerm.model_validate(t) for t in terms]
            ),
            payload="semantic term",
        )

    def get_semantic_terms(self, document_id: str) -> CommandResult:
        return self._dispatch(
            "get_semantic_terms", lambda: self.service.get_semantic_terms(document_id)
        )

    def save_consistency_rule(self, rule: Dict[str, Any]) -> CommandResult:
        return self._dispatch(
            "save_consistency_rule",
            lambda: self.service.save_consistency_rule(ConsistencyRule.model_validate(rule)),
            payload="consistency rule",
        )

    def get_consistency_rules(self) -> CommandResult:
        return self._dispatch("get_consistency_rules", self.service.get_consistency_rules)

    def save_analysis_cache(self, entry: Dict[str, Any]) -> CommandResult:
        return self._dispatch(
            "save_analysis_cache",
            lambda: self.service.save_analysis_cache(AnalysisCacheEntry.model_validate(entry)),
            payload="analysis cache entry",
        )

    def get_analysis_cache(self, document_id: str, content_hash: str) -> CommandResult:
        return self._dispatch(
            "get_analysis_cache",
            lambda: self.service.get_analysis_cache(document_id, content_hash),
        )

    def get_cached_analysis(self, document_id: str) -> CommandResult:
        return self._dispatch(
            "get_cached_analysis", lambda: self.service.get_cached_analysis(document_id)
        )

    def calculate_content_hash(self, content: str) -> CommandResult:
        return self._dispatch(
            "calculate_content_hash", lambda: self.service.calculate_content_hash(content)
        )

    # ── Diagnostics & Config ──────────────────────────────────────────────

    def get_storage_stats(self) -> CommandResult:
        return self._dispatch("get_storage_stats", self.service.get_storage_stats)

    def clear_document_cache(self) -> CommandResult:
        return self._dispatch("clear_document_cache", self.service.clear_document_cache)

    def get_cache_size(self) -> CommandResult:
        return self._dispatch("get_cache_size", self.service.get_cache_size)

    def get_config(self) -> CommandResult:
        return self._dispatch("get_config", self.service.get_config)

    def update_config(self, config: Dict[str, Any]) -> CommandResult:
        """Partial update: keys missing from `config` keep their current value."""

        def apply() -> StorageConfig:
            current = self.service.get_config().model_dump()
            return self.service.update_config(
                StorageConfig.model_validate({**current, **config})
            )

        return self._dispatch("update_config", apply, payload="config")

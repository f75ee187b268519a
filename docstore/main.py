"""
docstore — Bootstrap
=====================

What:  Logging setup and the factory that wires a ready-to-use StorageService
       (and its command surface) from Settings.
How:   create_storage_service() builds FileVault → PersistentStore →
       DocumentCache → StorageService. Nothing is process-global: the host
       owns the returned service and closes it on shutdown.
Who:   Called once by the host at startup; tests call it with their own
       Settings pointing at a temporary directory.

Component Wiring:
    ┌──────────────────────────────────────────────┐
    │               StorageCommands                │
    ├──────────────────────────────────────────────┤
    │               StorageService                 │
    │  ┌──────────────┐ ┌──────────┐ ┌──────────┐  │
    │  │PersistentStore│ │FileVault │ │DocCache  │  │
    │  └──────────────┘ └──────────┘ └──────────┘  │
    └──────────────────────────────────────────────┘

Lifecycle:
    Startup:  setup_logging() → create_storage_service() → StorageCommands(service)
    Shutdown: service.close() (disposes the database engine)
"""

import logging
import sys
from typing import Optional

from docstore.config import Settings, settings as default_settings
from docstore.middleware import CommandIdFilter
from docstore.services.document_cache import DocumentCache
from docstore.services.file_vault import FileVault
from docstore.services.storage_service import StorageService
from docstore.services.store import PersistentStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(command_id)s]: %(message)s"


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure the root logger for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(command_id)s]: %(message)s

    The command id comes from CommandIdFilter, attached to the handler so
    records from third-party loggers get it too.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(CommandIdFilter())

    level_name = log_level or default_settings.log_level
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,  # Override any existing logging config
    )

    # SQL statements are logged only when sql_echo is on
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def create_storage_service(settings: Optional[Settings] = None) -> StorageService:
    """
    Build a StorageService rooted at `settings.app_data_dir`.

    Raises:
        DatabaseError: the database could not be opened or initialized.
    """
    settings = settings or default_settings

    vault = FileVault(settings.app_data_dir, database_filename=settings.database_filename)
    store = PersistentStore(vault.database_path, echo=settings.sql_echo)
    cache = DocumentCache(
        capacity=settings.document_cache_capacity,
        lock_timeout=settings.lock_timeout_seconds,
    )
    service = StorageService(
        store=store,
        vault=vault,
        cache=cache,
        config=settings.to_storage_config(),
        lock_timeout=settings.lock_timeout_seconds,
    )

    logger.info(
        "Storage ready: db=%s cache_capacity=%d",
        vault.database_path,
        settings.document_cache_capacity,
    )
    return service

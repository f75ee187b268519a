"""
docstore — Application Configuration
=====================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the bootstrap code and by every component that needs a
       default (app data directory, cache capacity, lock timeout).
When:  Loaded once at module import time; validated before the service starts.

Runtime-tunable values (cache capacity, backup retention, auto-save interval)
are copied into a `StorageConfig` when the service is built; the service
owns that copy from then on, so `settings` itself is never mutated.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from docstore.schemas.storage import StorageConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for a single-user desktop install.
    Attributes are grouped by concern for readability.
    """

    # ── Filesystem Layout ─────────────────────────────────────────────────
    # What: Root of everything docstore writes (database, documents/, backups/)
    # Format: Any path; `~` is expanded by the validator below
    app_data_dir: str = Field(
        default="~/.local/share/docstore",
        description="Application data directory holding the database and backups",
    )

    # What: Name of the SQLite file inside app_data_dir
    database_filename: str = Field(default="semantic_assistant.db", min_length=1)

    # What: Echo every SQL statement through the sqlalchemy.engine logger
    sql_echo: bool = Field(default=False)

    # ── Document Cache ────────────────────────────────────────────────────
    # What: Maximum number of documents held in the in-memory LRU cache
    # 0 disables caching entirely (every read goes to the store)
    document_cache_capacity: int = Field(default=256, ge=0, le=100_000)

    # ── Concurrency ───────────────────────────────────────────────────────
    # What: How long a command waits for the store or cache lock
    # On expiry the command fails with LockContentionError; nothing retries
    lock_timeout_seconds: float = Field(default=30.0, gt=0, le=3600)

    # ── Backups ───────────────────────────────────────────────────────────
    # What: Number of backup snapshots kept by prune_backups()
    max_backups: int = Field(default=10, ge=1, le=1000)

    # What: Auto-save cadence advertised to the editor UI (seconds)
    auto_save_interval: int = Field(default=30, ge=5, le=3600)

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("app_data_dir")
    @classmethod
    def expand_app_data_dir(cls, v: str) -> str:
        """Expands `~` so every component sees the same absolute-ish path."""
        return str(Path(v).expanduser())

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # APP_DATA_DIR and app_data_dir both work
    }

    def to_storage_config(self) -> StorageConfig:
        """Snapshot of the runtime-tunable values handed to StorageService."""
        return StorageConfig(
            app_data_dir=self.app_data_dir,
            auto_save_interval=self.auto_save_interval,
            max_backups=self.max_backups,
            document_cache_capacity=self.document_cache_capacity,
        )


# Singleton instance, read by the bootstrap code and by component defaults
settings = Settings()

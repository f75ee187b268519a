"""
docstore — File Vault
======================

What:  Every filesystem side effect of the storage core: raw file read/write,
       directory listings, document import/export, backup snapshots and
       restoration.
How:   Synchronous pathlib/os I/O. Text is UTF-8 with newline translation
       disabled, so content round-trips byte for byte.
Who:   Owned by StorageService; depends on nothing else in the core except
       the PersistentStore handed to import/restore.

Directory Structure:
    <app_data_dir>/
    ├── semantic_assistant.db
    ├── documents/        reserved, not written by any operation
    └── backups/
        ├── My_Notes_20261019_083000.backup.md
        └── My_Notes_20261019_083000_1.backup.md   (same title, same second)

Failure policy:
    Directory bootstrap is best effort: failures are logged and swallowed
    (_ensure_dir), the next access tries again. Everything else raises
    FileStorageError with a descriptive message.
"""

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from docstore.exceptions import DatabaseError, FileStorageError
from docstore.schemas.document import Document, utc_now
from docstore.schemas.storage import FileInfo, ImportResult
from docstore.services.store import PersistentStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# ── Backup Snapshot Format ────────────────────────────────────────────────
BACKUP_SUFFIX = ".backup.md"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
HEADER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
# The header ends with a line holding only "---" followed by a blank line
BACKUP_DELIMITER = "---\n\n"

# Trailing "_YYYYMMDD_HHMMSS" stamp, optionally followed by a collision counter
_BACKUP_STAMP_RE = re.compile(r"_\d{8}_\d{6}(?:_\d+)?$")

MARKDOWN_EXTENSIONS = {".md", ".markdown"}

DOCUMENTS_DIRNAME = "documents"
BACKUPS_DIRNAME = "backups"


def sanitize_title(title: str) -> str:
    """Filename-safe form of a title: spaces and path separators become '_'."""
    cleaned = title.replace(" ", "_").replace("/", "_").replace("\\", "_")
    return cleaned or "Untitled"


def title_from_backup_name(backup_path: PathLike) -> str:
    """
    Recover a document title from a snapshot filename.

    "My_Notes_20261019_083000.backup.md" → "My Notes"
    """
    name = Path(backup_path).name
    if name.endswith(".md"):
        name = name[: -len(".md")]
    if name.endswith(".backup"):
        name = name[: -len(".backup")]
    name = _BACKUP_STAMP_RE.sub("", name)
    title = name.replace("_", " ").strip()
    return title or "Restored Document"


class FileVault:
    """
    Filesystem-backed operations rooted at one application data directory.
    """

    def __init__(
        self,
        app_data_dir: PathLike,
        database_filename: str = "semantic_assistant.db",
    ):
        """
        Args:
            app_data_dir:      Root directory; created on first use if absent.
            database_filename: Name of the SQLite file inside app_data_dir.
        """
        self.app_data_dir = Path(app_data_dir).expanduser().resolve()
        self.database_filename = database_filename
        self._ensure_dir(self.app_data_dir)
        logger.info("FileVault initialized with app_data_dir=%s", self.app_data_dir)

    # ── Paths ─────────────────────────────────────────────────────────────

    @staticmethod
    def _ensure_dir(path: Path) -> bool:
        """
        Best-effort directory creation.

        Failure is logged and discarded; returns whether the directory exists
        afterwards so callers can report it if they care.
        """
        try:
            path.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.warning("Failed to create directory %s: %s", path, str(e))
            return False

    @property
    def database_path(self) -> Path:
        return self.app_data_dir / self.database_filename

    @property
    def documents_dir(self) -> Path:
        path = self.app_data_dir / DOCUMENTS_DIRNAME
        self._ensure_dir(path)
        return path

    @property
    def backups_dir(self) -> Path:
        path = self.app_data_dir / BACKUPS_DIRNAME
        self._ensure_dir(path)
        return path

    # ── Raw File I/O ──────────────────────────────────────────────────────

    def read_file(self, file_path: PathLike) -> str:
        """
        Read a UTF-8 text file exactly as stored.

        Raises:
            FileStorageError: missing file, permission denied, invalid UTF-8.
        """
        try:
            with open(file_path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read file %s: %s", file_path, str(e))
            raise FileStorageError(
                message=f"Failed to read file: {e}",
                context={"path": str(file_path), "error": str(e)},
            ) from e

    def write_file(self, file_path: PathLike, content: str) -> None:
        """
        Write text to a file, creating missing parent directories first.

        Raises:
            FileStorageError: a directory could not be created or the write failed.
        """
        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create directory %s: %s", path.parent, str(e))
            raise FileStorageError(
                message=f"Failed to create directory: {e}",
                context={"path": str(path.parent), "error": str(e)},
            ) from e

        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            logger.error("Failed to write file %s: %s", path, str(e))
            raise FileStorageError(
                message=f"Failed to write file: {e}",
                context={"path": str(path), "error": str(e)},
            ) from e

        logger.debug("File written: %s (%d chars)", path, len(content))

    def delete_file(self, file_path: PathLike) -> None:
        """
        Remove a file. Unlike directory bootstrap, failure is an error.

        Raises:
            FileStorageError: the file does not exist or could not be removed.
        """
        try:
            Path(file_path).unlink()
        except OSError as e:
            logger.error("Failed to delete file %s: %s", file_path, str(e))
            raise FileStorageError(
                message=f"Failed to delete file: {e}",
                context={"path": str(file_path), "error": str(e)},
            ) from e
        logger.info("File deleted: %s", file_path)

    # ── Listings ──────────────────────────────────────────────────────────

    @staticmethod
    def _file_info(path: Path, stat: os.stat_result) -> FileInfo:
        return FileInfo(
            name=path.name,
            path=str(path.resolve()),
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            extension=path.suffix[1:] or None,
        )

    def list_directory(self, dir_path: PathLike) -> List[FileInfo]:
        """
        Regular files directly inside `dir_path`, sorted by name.
        Sub-directories are skipped.

        Raises:
            FileStorageError: the directory or an entry's metadata is unreadable.
        """
        files: List[FileInfo] = []
        try:
            with os.scandir(dir_path) as entries:
                for entry in entries:
                    if not entry.is_file():
                        continue
                    files.append(self._file_info(Path(entry.path), entry.stat()))
        except OSError as e:
            logger.error("Failed to read directory %s: %s", dir_path, str(e))
            raise FileStorageError(
                message=f"Failed to read directory: {e}",
                context={"path": str(dir_path), "error": str(e)},
            ) from e

        files.sort(key=lambda info: info.name)
        return files

    def get_file_info(self, file_path: PathLike) -> FileInfo:
        path = Path(file_path)
        try:
            stat = path.stat()
        except OSError as e:
            raise FileStorageError(
                message=f"Failed to read file metadata: {e}",
                context={"path": str(path), "error": str(e)},
            ) from e
        return self._file_info(path, stat)

    # ── Import / Export ───────────────────────────────────────────────────

    def import_document(self, file_path: PathLike, store: PersistentStore) -> ImportResult:
        """
        Create a new document from a text file.

        Title is the file's base name without extension; content is taken
        as plain text whatever the extension says.

        Returns:
            ImportResult; success=False (with a message) if the store rejected
            the document.

        Raises:
            FileStorageError: the file could not be read.
        """
        content = self.read_file(file_path)
        title = Path(file_path).stem or "Untitled"
        document = Document.new(title=title, content=content, file_path=str(file_path))

        try:
            store.save_document(document)
        except DatabaseError as e:
            logger.error("Import of %s failed to persist: %s", file_path, e.message)
            return ImportResult(
                success=False,
                document_id=None,
                message=f"Failed to save document: {e.message}",
            )

        logger.info(
            "Imported %s as document %s (%d words)",
            file_path,
            document.id,
            document.word_count,
        )
        return ImportResult(
            success=True,
            document_id=document.id,
            message="Document imported successfully",
        )

    def export_document(self, document: Document, export_path: PathLike) -> None:
        """
        Write a document to `export_path`.

        Markdown targets (.md / .markdown) get a "# <title>" heading and a
        blank line before the body; anything else is written verbatim.
        """
        if Path(export_path).suffix.lower() in MARKDOWN_EXTENSIONS:
            body = f"# {document.title}\n\n{document.content}"
        else:
            body = document.content

        self.write_file(export_path, body)
        logger.info("Exported document %s to %s", document.id, export_path)

    # ── Backups ───────────────────────────────────────────────────────────

    def _next_backup_path(self, title: str) -> Path:
        backups_dir = self.backups_dir
        base = f"{sanitize_title(title)}_{utc_now().strftime(BACKUP_TIMESTAMP_FORMAT)}"
        candidate = backups_dir / f"{base}{BACKUP_SUFFIX}"
        counter = 1
        while candidate.exists():
            candidate = backups_dir / f"{base}_{counter}{BACKUP_SUFFIX}"
            counter += 1
        return candidate

    @staticmethod
    def render_backup(document: Document) -> str:
        """Snapshot body: markdown header, delimiter line, raw content."""
        created = document.created_at.astimezone(timezone.utc)
        modified = document.updated_at.astimezone(timezone.utc)
        return (
            f"# {document.title} (Backup)\n\n"
            f"Created: {created.strftime(HEADER_TIMESTAMP_FORMAT)}\n"
            f"Last Modified: {modified.strftime(HEADER_TIMESTAMP_FORMAT)}\n"
            f"Word Count: {document.word_count}\n\n"
            f"{BACKUP_DELIMITER}"
            f"{document.content}"
        )

    def create_backup(self, document: Document) -> str:
        """
        Write a snapshot of `document` into the backups directory.

        Returns:
            Path of the snapshot file.

        Raises:
            FileStorageError: the snapshot could not be written.
        """
        target = self._next_backup_path(document.title)
        self.write_file(target, self.render_backup(document))
        logger.info("Backup created for document %s: %s", document.id, target.name)
        return str(target)

    def list_backups(self) -> List[FileInfo]:
        return self.list_directory(self.backups_dir)

    def restore_from_backup(self, backup_path: PathLike, store: PersistentStore) -> ImportResult:
        """
        Recreate a document from a snapshot file.

        The body is everything after the first delimiter. A file without a
        delimiter is restored whole (header text included); that path
        succeeds but is logged and flagged in the result message.

        The restored document is always new: fresh id and timestamps, no
        file_path.

        Raises:
            FileStorageError: the snapshot could not be read.
        """
        raw = self.read_file(backup_path)
        _, delimiter, body = raw.partition(BACKUP_DELIMITER)

        message = "Document restored successfully"
        if delimiter:
            content = body
        else:
            content = raw
            logger.warning(
                "Backup %s has no '---' delimiter; restoring the whole file as content",
                backup_path,
            )
            message = "Document restored successfully (no backup header found, whole file used as content)"

        document = Document.new(title=title_from_backup_name(backup_path), content=content)

        try:
            store.save_document(document)
        except DatabaseError as e:
            logger.error("Restore of %s failed to persist: %s", backup_path, e.message)
            return ImportResult(
                success=False,
                document_id=None,
                message=f"Failed to restore document: {e.message}",
            )

        logger.info("Restored %s as document %s", backup_path, document.id)
        return ImportResult(success=True, document_id=document.id, message=message)

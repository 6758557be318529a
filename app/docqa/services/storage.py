"""
File storage for uploaded documents.

Files are written under the configured upload directory as
`<epoch-ms>_<sanitized-base><ext>`, keeping the original extension so the
format sniffer can use it.
"""

import logging
import os
import re
import time
from pathlib import Path

from ..config import get_settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]+", re.IGNORECASE)
MAX_BASENAME_LENGTH = 80


class StorageError(Exception):
    """Raised when a file cannot be stored."""

    pass


def safe_filename(original: str, timestamp_ms: int | None = None) -> str:
    """
    Build a storage filename from an uploaded filename.

    Args:
        original: Filename as sent by the client.
        timestamp_ms: Prefix; defaults to the current epoch milliseconds.

    Returns:
        `<timestamp>_<base><ext>` with the base reduced to [A-Za-z0-9_-].
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    name = Path(original or "").name
    ext = Path(name).suffix
    base = name[: -len(ext)] if ext else name
    base = _UNSAFE_CHARS.sub("_", base)[:MAX_BASENAME_LENGTH]
    return f"{timestamp_ms}_{base}{ext}"


class FileStorage:
    """Saves and deletes document files on local disk."""

    def __init__(self, root: str | os.PathLike | None = None):
        self.root = Path(root) if root is not None else get_settings().upload_dir

    def save(self, original_filename: str, content: bytes) -> Path:
        """
        Write content to a new file and flush it to disk.

        Returns:
            Path of the stored file.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path = self.root / safe_filename(original_filename)
            with open(path, "wb") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as e:
            logger.error("Failed to store %s: %s", original_filename, e)
            raise StorageError(f"Could not store file: {e.strerror or e}") from e

        logger.info("Stored %s as %s (%d bytes)", original_filename, path, len(content))
        return path

    def delete(self, path: str | os.PathLike) -> bool:
        """Remove a stored file. Returns False if it was gone or could not be removed."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.warning("Stored file %s already missing", path)
            return False
        except OSError as e:
            logger.error("Could not delete stored file %s: %s", path, e)
            return False
        logger.info("Deleted stored file %s", path)
        return True


_file_storage: FileStorage | None = None


def get_file_storage() -> FileStorage:
    """Get or create the file storage singleton."""
    global _file_storage
    if _file_storage is None:
        _file_storage = FileStorage()
    return _file_storage

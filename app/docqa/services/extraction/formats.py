"""
Format sniffing for uploaded source files.

Classifies a file as PDF, DOCX or unknown from its extension and leading
bytes. The PDF magic number wins over a wrong or missing extension.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ...models import ExtractionFormat

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


@dataclass(frozen=True)
class SourceFile:
    """
    Immutable reference to a stored document.

    Attributes:
        path: Location of the file on disk.
        size: Byte length at the time the reference was built.
        extension: Lower-cased extension including the dot, or "" if none.
    """

    path: Path
    size: int
    extension: str

    @classmethod
    def from_path(cls, path: str | os.PathLike) -> "SourceFile":
        """Build a reference, tolerating files that cannot be stat'ed."""
        path = Path(path)
        try:
            size = path.stat().st_size
        except (OSError, ValueError):
            size = 0
        return cls(path=path, size=size, extension=path.suffix.lower())

    @property
    def format(self) -> ExtractionFormat:
        return classify(self)


def read_magic(path: str | os.PathLike, length: int = len(PDF_MAGIC)) -> bytes:
    """Return up to `length` leading bytes, or b"" when unreadable."""
    try:
        with open(path, "rb") as fh:
            return fh.read(length)
    except (OSError, ValueError) as e:
        logger.debug("Could not read header of %s: %s", path, e)
        return b""


def classify(source: SourceFile | str | os.PathLike) -> ExtractionFormat:
    """
    Classify a file for extraction.

    Args:
        source: A SourceFile or a path.

    Returns:
        PDF when the extension is .pdf or the file starts with %PDF-,
        DOCX when the extension is .docx, otherwise UNKNOWN.
    """
    if not isinstance(source, SourceFile):
        source = SourceFile.from_path(source)

    if source.extension == ".pdf":
        return ExtractionFormat.PDF
    if read_magic(source.path) == PDF_MAGIC:
        return ExtractionFormat.PDF
    if source.extension == ".docx":
        return ExtractionFormat.DOCX
    return ExtractionFormat.UNKNOWN

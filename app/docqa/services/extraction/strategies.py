"""
Text extraction strategies.

Each strategy turns a file path into plain text or an empty string. Failures
inside a strategy (corrupt streams, missing parser libraries, a missing
pdftotext binary) are logged and reported as "" so the chain can move on to
the next strategy.

Order per format:
- PDF: pdfminer.six -> pypdf -> pdftotext (poppler CLI, optional)
- DOCX: python-docx
- UNKNOWN: python-docx as a last resort
"""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod

from ...config import Settings
from ...models import ExtractionFormat, ExtractionStrategyName

logger = logging.getLogger(__name__)


class ExtractionStrategy(ABC):
    """A single attempt at pulling text out of a file."""

    name: ExtractionStrategyName

    def attempt(self, path: str | os.PathLike) -> str:
        """
        Run the strategy, never raising.

        Args:
            path: File to extract from.

        Returns:
            The extracted text, or "" when the strategy failed or found nothing.
        """
        try:
            text = self._extract(os.fspath(path))
        except Exception as e:
            logger.warning(
                "Extraction strategy %s failed for %s: %s: %s",
                self.name.value,
                path,
                type(e).__name__,
                e,
            )
            return ""
        return text or ""

    @abstractmethod
    def _extract(self, path: str) -> str:
        """Extract text; may raise."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class PdfMinerStrategy(ExtractionStrategy):
    """General-purpose text-layer extraction with pdfminer.six."""

    name = ExtractionStrategyName.PDFMINER

    def _extract(self, path: str) -> str:
        from pdfminer.high_level import extract_text

        return extract_text(path)


class PyPdfStrategy(ExtractionStrategy):
    """Walks the page tree and content streams with pypdf."""

    name = ExtractionStrategyName.PYPDF

    def _extract(self, path: str) -> str:
        from pypdf import PdfReader

        reader = PdfReader(path, strict=False)
        pages = []
        for page in reader.pages:
            pages.append(page.extract_text() or "")
        return "\n".join(pages)


class PdftotextStrategy(ExtractionStrategy):
    """
    Shells out to poppler's `pdftotext -layout <path> -`.

    Only a zero exit status with non-empty stdout counts as a result. A
    missing binary is not an error, just another empty result.
    """

    name = ExtractionStrategyName.PDFTOTEXT

    def __init__(self, executable: str = "pdftotext", timeout: float | None = 10.0):
        self.executable = executable
        self.timeout = timeout

    def _resolve_executable(self) -> str | None:
        return shutil.which(self.executable)

    def _extract(self, path: str) -> str:
        executable = self._resolve_executable()
        if executable is None:
            logger.info("%s not found on PATH, skipping", self.executable)
            return ""

        completed = subprocess.run(
            [executable, "-layout", path, "-"],
            capture_output=True,
            timeout=self.timeout,
            check=False,
        )
        if completed.returncode != 0:
            logger.warning(
                "%s exited with status %d for %s",
                self.executable,
                completed.returncode,
                path,
            )
            return ""
        return completed.stdout.decode("utf-8", errors="replace")


class DocxStrategy(ExtractionStrategy):
    """Raw body paragraph text from an OOXML package via python-docx."""

    name = ExtractionStrategyName.DOCX

    def _extract(self, path: str) -> str:
        import docx

        document = docx.Document(path)
        return "\n".join(paragraph.text for paragraph in document.paragraphs)


def build_strategy_chain(
    fmt: ExtractionFormat,
    settings: Settings | None = None,
) -> list[ExtractionStrategy]:
    """
    Build the ordered strategy list for a format.

    Args:
        fmt: The sniffed format.
        settings: Controls the optional pdftotext fallback. Defaults to
            pdftotext enabled with a 10 second timeout.

    Returns:
        Strategies to try in order; cheaper ones first.
    """
    if fmt == ExtractionFormat.PDF:
        chain: list[ExtractionStrategy] = [PdfMinerStrategy(), PyPdfStrategy()]
        if settings is None:
            chain.append(PdftotextStrategy())
        elif settings.pdftotext_enabled:
            chain.append(
                PdftotextStrategy(
                    executable=settings.pdftotext_path,
                    timeout=settings.pdftotext_timeout_seconds,
                )
            )
        return chain

    # DOCX proper, and the last-resort attempt for unrecognized files
    return [DocxStrategy()]

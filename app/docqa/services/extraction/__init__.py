"""
Text extraction package.

Turns stored PDF/DOCX files into plain text for question answering:
- formats: format sniffing (extension + %PDF- magic number)
- strategies: the ordered extraction strategies per format
- exceptions: failures that are not business outcomes

TextExtractionService ties them together and returns either an
ExtractionResult or a NoText outcome.
"""

import logging
import os
import re
from collections.abc import Callable, Sequence

from ...config import Settings, get_settings
from ...models import ExtractionFormat, ExtractionResult, NoText, NoTextReason
from .exceptions import ExtractionError, UnreadableFileError
from .formats import SourceFile, classify
from .strategies import (
    DocxStrategy,
    ExtractionStrategy,
    PdfMinerStrategy,
    PdftotextStrategy,
    PyPdfStrategy,
    build_strategy_chain,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DocxStrategy",
    "ExtractionError",
    "ExtractionStrategy",
    "PdfMinerStrategy",
    "PdftotextStrategy",
    "PyPdfStrategy",
    "SourceFile",
    "TextExtractionService",
    "UnreadableFileError",
    "build_strategy_chain",
    "classify",
    "get_extraction_service",
    "normalize_text",
]

_BLANK_RUNS = re.compile(r"\n[ \t]*(?:\n[ \t]*){2,}")

ChainFactory = Callable[[ExtractionFormat], Sequence[ExtractionStrategy]]


def normalize_text(text: str) -> str:
    """Normalize newlines, drop NULs and squeeze long runs of blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


class TextExtractionService:
    """
    Extracts plain text from stored documents.

    Sniffs the format, then runs the strategy chain for that format and
    returns the first non-empty result. Exhausting the chain is a normal
    outcome (e.g. a scanned, image-only PDF) and is reported as NoText.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        chain_factory: ChainFactory | None = None,
    ):
        """
        Initialize the extraction service.

        Args:
            settings: Application settings; controls the pdftotext fallback.
            chain_factory: Returns the strategies for a format. Defaults to
                build_strategy_chain; tests substitute their own.
        """
        self.settings = settings or get_settings()
        self._chain_factory = chain_factory or (
            lambda fmt: build_strategy_chain(fmt, self.settings)
        )

    def strategies_for(self, fmt: ExtractionFormat) -> list[ExtractionStrategy]:
        return list(self._chain_factory(fmt))

    def extract_text(self, path: str | os.PathLike) -> ExtractionResult | NoText:
        """
        Extract text from a file.

        Args:
            path: Location of an existing, non-empty document.

        Returns:
            ExtractionResult with the first non-empty text, or NoText when
            every applicable strategy came back empty.

        Raises:
            UnreadableFileError: If the file cannot be opened.
        """
        source = SourceFile.from_path(path)
        try:
            with open(source.path, "rb") as fh:
                fh.read(1)
        except (OSError, ValueError) as e:
            logger.error("Cannot open %s for extraction: %s", source.path, e)
            reason = getattr(e, "strerror", None) or str(e)
            raise UnreadableFileError(str(source.path), reason) from e

        fmt = classify(source)
        chain = self.strategies_for(fmt)
        logger.info(
            "Extracting text from %s (format=%s, %d bytes, strategies=%s)",
            source.path,
            fmt.value,
            source.size,
            [s.name.value for s in chain],
        )

        for strategy in chain:
            text = normalize_text(strategy.attempt(source.path))
            if text:
                logger.info(
                    "Extracted %d characters from %s using %s",
                    len(text),
                    source.path,
                    strategy.name.value,
                )
                return ExtractionResult(text=text, strategy=strategy.name, format=fmt)
            logger.debug("Strategy %s produced no text", strategy.name.value)

        reason = (
            NoTextReason.UNSUPPORTED_FORMAT
            if fmt == ExtractionFormat.UNKNOWN
            else NoTextReason.NO_EXTRACTABLE_TEXT
        )
        logger.warning("No text extracted from %s (%s)", source.path, reason.value)
        return NoText(format=fmt, reason=reason)


# Singleton instance for convenience
_extraction_service: TextExtractionService | None = None


def get_extraction_service() -> TextExtractionService:
    """Get or create the text extraction service singleton."""
    global _extraction_service
    if _extraction_service is None:
        _extraction_service = TextExtractionService()
    return _extraction_service

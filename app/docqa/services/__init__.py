"""
Services package for the document Q&A application.

Contains:
- extraction: Format sniffing and multi-strategy text extraction
- answer_service: Gemini question answering with bounded retry
- storage: Upload storage on local disk
"""

from .answer_service import AnswerService
from .extraction import TextExtractionService

__all__ = ["AnswerService", "TextExtractionService"]

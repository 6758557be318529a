"""
Pydantic models for the document Q&A service.

Defines the transient extraction and answering values plus the request and
response bodies of the HTTP API.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractionFormat(str, Enum):
    """File formats recognized by the format sniffer."""

    PDF = "pdf"
    DOCX = "docx"
    UNKNOWN = "unknown"


class ExtractionStrategyName(str, Enum):
    """Identifiers of the available text extraction strategies."""

    PDFMINER = "pdfminer"
    PYPDF = "pypdf"
    PDFTOTEXT = "pdftotext"
    DOCX = "docx"


class NoTextReason(str, Enum):
    """Why the extraction chain produced no text."""

    NO_EXTRACTABLE_TEXT = "no_extractable_text"
    UNSUPPORTED_FORMAT = "unsupported_format"


class ExtractionResult(BaseModel):
    """
    Text successfully extracted from a source file.

    Attributes:
        text: Normalized plain text, never empty after trimming.
        strategy: The strategy that produced the text.
        format: The sniffed file format.
    """

    text: str = Field(..., min_length=1)
    strategy: ExtractionStrategyName
    format: ExtractionFormat

    @field_validator("text")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Whitespace-only output is not a result."""
        if not v.strip():
            raise ValueError("Extracted text must not be blank")
        return v


class NoText(BaseModel):
    """Every applicable strategy ran and returned nothing."""

    format: ExtractionFormat
    reason: NoTextReason

    @property
    def message(self) -> str:
        """User-facing explanation of the outcome."""
        if self.reason == NoTextReason.UNSUPPORTED_FORMAT:
            return "Unsupported file format. Upload a PDF or DOCX document."
        return (
            "No extractable text found. The document may be a scanned image; "
            "run it through OCR or upload a text-bearing version."
        )


class AnswerResult(BaseModel):
    """Answer produced by the question-answering gateway."""

    answer: str
    truncated: bool = Field(
        default=False,
        description="Whether the document text was clipped before prompting",
    )


# =============================================================================
# API Request/Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(default="healthy")
    message: str = Field(default="Service is running")
    version: str = Field(default="1.0.0")


class AskRequest(BaseModel):
    """Request body for asking a question about a document."""

    question: str = Field(
        ...,
        max_length=4000,
        description="Natural-language question about the document",
        examples=["What is the total?"],
    )


class AskResponse(BaseModel):
    """Response for a successfully answered question."""

    document_id: int
    question: str
    answer: str
    truncated: bool = False
    strategy: ExtractionStrategyName


class DocumentResponse(BaseModel):
    """Public view of a stored document."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    original_filename: str | None = None
    size_bytes: int
    user_id: int | None = None
    uploaded_at: datetime

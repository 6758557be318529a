"""
Exceptions raised by the text extraction service.
"""


class ExtractionError(Exception):
    """Base class for extraction failures that are not business outcomes."""

    pass


class UnreadableFileError(ExtractionError):
    """Raised when the source file cannot be opened or read."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Unable to read document file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)

"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Gemini (mock mode when no key is configured)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Question answering
    answer_timeout_seconds: float = 20.0
    answer_retry_delay_seconds: float = 0.8
    max_document_chars: int = 20_000

    # Optional poppler command-line fallback for PDFs
    pdftotext_enabled: bool = True
    pdftotext_path: str = "pdftotext"
    pdftotext_timeout_seconds: float = 10.0

    # Storage
    database_url: str = "sqlite:///./docqa.db"
    upload_dir: Path = Path("uploads")

    # Debug flags
    sql_debug: bool = False
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the package directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()

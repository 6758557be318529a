"""Pytest configuration and fixtures."""

import os
import tempfile
from pathlib import Path
from typing import Generator

# Point the application at throwaway storage before it is imported.
_TEST_ROOT = tempfile.mkdtemp(prefix="docqa-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_ROOT}/app.db")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ["GEMINI_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.docqa.config import Settings  # noqa: E402
from app.docqa.database import Base, get_db  # noqa: E402
from app.docqa.main import app  # noqa: E402
from app.docqa import models_db  # noqa: E402,F401
from app.docqa.services.extraction import (  # noqa: E402
    TextExtractionService,
    get_extraction_service,
)
from app.docqa.services.storage import FileStorage, get_file_storage  # noqa: E402


def build_pdf(text: str | None = None) -> bytes:
    """
    Build a one-page PDF with a correct xref table.

    With `text` the page draws it in Helvetica; without it the page has an
    empty content stream, like a scanned page with no text layer.
    """
    if text:
        escaped = (
            text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        ).encode("latin-1")
        content = b"BT\n/F1 12 Tf\n72 720 Td\n(" + escaped + b") Tj\nET"
    else:
        content = b""

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


def build_docx(paragraphs: list[str]) -> bytes:
    """Build a DOCX package with python-docx."""
    import io

    import docx

    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the pdftotext fallback disabled for hermetic runs."""
    return Settings(pdftotext_enabled=False, gemini_api_key="")


@pytest.fixture
def extraction_service(test_settings: Settings) -> TextExtractionService:
    return TextExtractionService(settings=test_settings)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """PDF whose text layer reads 'Invoice Total: $42'."""
    return build_pdf("Invoice Total: $42")


@pytest.fixture
def image_only_pdf_bytes() -> bytes:
    """PDF with a page but no text layer."""
    return build_pdf(None)


@pytest.fixture
def sample_docx_bytes() -> bytes:
    return build_docx(["Quarterly report", "Revenue grew 12% year over year."])


@pytest.fixture
def write_file(tmp_path: Path):
    """Write bytes to a file under tmp_path and return its path."""

    def _write(name: str, content: bytes) -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _write


@pytest.fixture
def storage(tmp_path: Path) -> FileStorage:
    return FileStorage(tmp_path / "uploads")


@pytest.fixture
def client(
    tmp_path: Path,
    storage: FileStorage,
    extraction_service: TextExtractionService,
) -> Generator[TestClient, None, None]:
    """
    Create a test client backed by a per-test SQLite database.

    The answer service runs in mock mode unless a test overrides it.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage
    app.dependency_overrides[get_extraction_service] = lambda: extraction_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    engine.dispose()

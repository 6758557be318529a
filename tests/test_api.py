"""Tests for FastAPI endpoints."""

import json
from pathlib import Path

import httpx
from fastapi.testclient import TestClient

from app.docqa.main import app
from app.docqa.services.answer_service import AnswerService, get_answer_service


async def _no_sleep(delay):
    return None


def use_upstream(handler) -> list[httpx.Request]:
    """Route the answer service through a mock transport; return seen requests."""
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    service = AnswerService(
        api_key="test-key",
        transport=httpx.MockTransport(recording),
        sleep=_no_sleep,
    )
    app.dependency_overrides[get_answer_service] = lambda: service
    return seen


def upload(client: TestClient, filename: str, content: bytes, **data) -> dict:
    response = client.post(
        "/documents",
        files={"file": (filename, content, "application/octet-stream")},
        data=data,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client: TestClient):
        """Test root endpoint returns health status."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_health_endpoint(self, client: TestClient):
        """Test /health endpoint returns health status."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDocumentEndpoints:
    """Tests for document upload and management."""

    def test_upload_document(self, client: TestClient, storage, sample_pdf_bytes):
        data = upload(client, "Invoice March.pdf", sample_pdf_bytes, title="March invoice", user_id="7")

        assert data["title"] == "March invoice"
        assert data["original_filename"] == "Invoice March.pdf"
        assert data["size_bytes"] == len(sample_pdf_bytes)
        assert data["user_id"] == 7
        stored = list(storage.root.iterdir())
        assert len(stored) == 1
        assert stored[0].name.endswith("_Invoice_March.pdf")
        assert stored[0].read_bytes() == sample_pdf_bytes

    def test_upload_defaults_title_to_filename(self, client: TestClient, sample_docx_bytes):
        data = upload(client, "report.docx", sample_docx_bytes)
        assert data["title"] == "report.docx"
        assert data["user_id"] is None

    def test_upload_rejects_empty_file(self, client: TestClient):
        response = client.post(
            "/documents",
            files={"file": ("empty.pdf", b"", "application/pdf")},
        )
        assert response.status_code == 400
        assert "Empty" in response.json()["detail"]

    def test_list_documents_filters_by_user(self, client: TestClient, sample_pdf_bytes):
        upload(client, "a.pdf", sample_pdf_bytes, user_id="1")
        upload(client, "b.pdf", sample_pdf_bytes, user_id="2")
        upload(client, "c.pdf", sample_pdf_bytes, user_id="1")

        assert len(client.get("/documents").json()) == 3
        mine = client.get("/documents", params={"user_id": 1}).json()
        assert sorted(d["original_filename"] for d in mine) == ["a.pdf", "c.pdf"]

    def test_list_documents_pagination(self, client: TestClient, sample_pdf_bytes):
        for name in ("a.pdf", "b.pdf", "c.pdf"):
            upload(client, name, sample_pdf_bytes)
        page = client.get("/documents", params={"skip": 1, "limit": 1}).json()
        assert len(page) == 1

    def test_get_document_not_found(self, client: TestClient):
        response = client.get("/documents/999")
        assert response.status_code == 404

    def test_delete_document_removes_file(self, client: TestClient, storage, sample_pdf_bytes):
        doc = upload(client, "a.pdf", sample_pdf_bytes)

        response = client.delete(f"/documents/{doc['id']}")

        assert response.status_code == 204
        assert list(storage.root.iterdir()) == []
        assert client.get(f"/documents/{doc['id']}").status_code == 404

    def test_delete_missing_document(self, client: TestClient):
        assert client.delete("/documents/12345").status_code == 404

    def test_delete_survives_file_removal_error(
        self, client: TestClient, sample_pdf_bytes, monkeypatch
    ):
        """Test the row is still deleted when the stored file cannot be removed."""
        doc = upload(client, "a.pdf", sample_pdf_bytes)

        def refuse(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "unlink", refuse)
        response = client.delete(f"/documents/{doc['id']}")
        monkeypatch.undo()

        assert response.status_code == 204
        assert client.get(f"/documents/{doc['id']}").status_code == 404


class TestAskEndpoint:
    """Tests for POST /documents/{id}/ask."""

    def test_answers_from_pdf_text(self, client: TestClient, sample_pdf_bytes):
        """Test the full upload -> extract -> answer flow with a stubbed model."""
        seen = use_upstream(
            lambda request: httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": "The total is $42."}]}}]},
            )
        )
        doc = upload(client, "sample.pdf", sample_pdf_bytes)

        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "What is the total?"})

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["answer"] == "The total is $42."
        assert data["document_id"] == doc["id"]
        assert data["truncated"] is False
        assert data["strategy"] in ("pdfminer", "pypdf")
        prompt = json.loads(seen[0].content)["contents"][0]["parts"][0]["text"]
        assert "Invoice Total: $42" in prompt
        assert prompt.endswith("Question: What is the total?")

    def test_answers_from_docx_in_mock_mode(self, client: TestClient, sample_docx_bytes):
        app.dependency_overrides[get_answer_service] = lambda: AnswerService(api_key="")
        doc = upload(client, "report.docx", sample_docx_bytes)

        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "How much growth?"})

        assert response.status_code == 200
        assert response.json()["strategy"] == "docx"
        assert "MOCK" in response.json()["answer"]

    def test_blank_question(self, client: TestClient, sample_pdf_bytes):
        doc = upload(client, "sample.pdf", sample_pdf_bytes)
        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "   "})
        assert response.status_code == 400

    def test_missing_question_field(self, client: TestClient, sample_pdf_bytes):
        doc = upload(client, "sample.pdf", sample_pdf_bytes)
        response = client.post(f"/documents/{doc['id']}/ask", json={})
        assert response.status_code == 422

    def test_document_not_found(self, client: TestClient):
        response = client.post("/documents/404/ask", json={"question": "Anything?"})
        assert response.status_code == 404

    def test_stored_file_missing(self, client: TestClient, storage, sample_pdf_bytes):
        doc = upload(client, "sample.pdf", sample_pdf_bytes)
        for path in storage.root.iterdir():
            path.unlink()
        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "Q?"})
        assert response.status_code == 404

    def test_scanned_pdf(self, client: TestClient, image_only_pdf_bytes):
        doc = upload(client, "scan.pdf", image_only_pdf_bytes)
        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "Q?"})
        assert response.status_code == 422
        assert "OCR" in response.json()["detail"]

    def test_unsupported_format(self, client: TestClient):
        doc = upload(client, "notes.txt", b"plain text notes")
        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "Q?"})
        assert response.status_code == 415
        assert "Unsupported" in response.json()["detail"]

    def test_upstream_unreachable(self, client: TestClient, sample_pdf_bytes):
        def down(request):
            raise httpx.ConnectError("connection refused")

        seen = use_upstream(down)
        doc = upload(client, "sample.pdf", sample_pdf_bytes)

        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "Q?"})

        assert response.status_code == 503
        assert "retry later" in response.json()["detail"]
        assert "test-key" not in response.text
        assert len(seen) == 2

    def test_upstream_error_forwarded(self, client: TestClient, sample_pdf_bytes):
        error_body = {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}
        use_upstream(lambda request: httpx.Response(400, json=error_body))
        doc = upload(client, "sample.pdf", sample_pdf_bytes)

        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "Q?"})

        assert response.status_code == 400
        assert response.json()["error"] == error_body

    def test_upstream_malformed(self, client: TestClient, sample_pdf_bytes):
        use_upstream(lambda request: httpx.Response(200, text="not json"))
        doc = upload(client, "sample.pdf", sample_pdf_bytes)

        response = client.post(f"/documents/{doc['id']}/ask", json={"question": "Q?"})

        assert response.status_code == 502


class TestCORS:
    """Tests for CORS configuration."""

    def test_cors_allows_localhost_3000(self, client: TestClient):
        """Test that localhost:3000 is allowed."""
        response = client.get(
            "/health",
            headers={"Origin": "http://localhost:3000"},
        )
        assert response.status_code == 200
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )

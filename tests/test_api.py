import json
import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from pdf_buddy.api.dependencies import get_answer_service, get_llm_client
from pdf_buddy.core.errors import ExternalServiceError
from pdf_buddy.llm.client import LLMClient
from pdf_buddy.main import create_app
from pdf_buddy.retrieval.answer import AnswerService
from pdf_buddy.retrieval.search import TextSearcher
from pdf_buddy.storage.store import DocumentStore

from conftest import make_pdf, write_document


@pytest.fixture
def app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
    app.dependency_overrides = {}


@pytest.fixture
def api_store(test_settings):
    return DocumentStore(test_settings.storage_path)


@pytest.fixture
def mock_llm():
    mock = AsyncMock(spec=LLMClient)
    mock.generate_with_fallback.side_effect = ExternalServiceError("all models failed")
    return mock


@pytest.fixture
def with_mock_llm(app, api_store, mock_llm):
    app.dependency_overrides[get_llm_client] = lambda: mock_llm
    app.dependency_overrides[get_answer_service] = lambda: AnswerService(
        api_store, mock_llm, TextSearcher(api_store)
    )
    return mock_llm


def _wait_for_job(client, job_id, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get(f"/jobs/{job_id}").json()
        if data["status"] in ("completed", "failed"):
            return data
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish")


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert "timestamp" in resp.json()

    def test_index_lists_endpoints(self, client):
        data = client.get("/").json()
        assert "/upload/pdf" in data["endpoints"]

    def test_model_probe(self, client, with_mock_llm):
        with_mock_llm.probe_models.return_value = [
            {"model": "gemini-pro", "status": "working", "response": "Hello"}
        ]
        resp = client.get("/health/models")
        assert resp.status_code == 200
        assert resp.json()["success"] is True


class TestUpload:

    def test_rejects_non_pdf(self, client):
        resp = client.post("/upload/pdf", files={"pdf": ("notes.txt", b"hello", "text/plain")})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Only PDF files are allowed"}

    def test_rejects_missing_file(self, client):
        resp = client.post("/upload/pdf", data={"other": "x"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No file uploaded"}

    def test_rejects_oversized_file(self, app, client):
        app.state.settings.max_upload_bytes = 1024
        resp = client.post(
            "/upload/pdf", files={"pdf": ("big.pdf", b"x" * 2048, "application/pdf")}
        )
        assert resp.status_code == 400
        assert "exceeds" in resp.json()["error"]

    def test_upload_is_processed_in_background(self, client, test_settings):
        pdf = make_pdf(["[Intro]\nThe warranty covers parts and labour for two years."])

        resp = client.post("/upload/pdf", files={"pdf": ("warranty.pdf", pdf, "application/pdf")})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["status"] == "queued"
        assert body["filename"] == "warranty.pdf"
        assert list(test_settings.upload_path.iterdir())[0].name.endswith("-warranty.pdf")

        job = _wait_for_job(client, body["jobId"])
        assert job["status"] == "completed"
        assert job["stage"] == "complete"

        listing = client.get("/pdfs").json()
        assert listing["count"] == 1
        pdf_entry = listing["pdfs"][0]
        assert pdf_entry["id"] == job["pdfId"]
        assert pdf_entry["name"] == "warranty.pdf"
        assert pdf_entry["extractionSuccess"] is True
        assert pdf_entry["embeddings"] == 0

    def test_unknown_job_is_404(self, client):
        assert client.get("/jobs/999").status_code == 404


class TestDocuments:

    def test_get_pdf_details(self, client, api_store):
        write_document(api_store, "doc_1_1", "x" * 1500, name="doc.pdf")

        resp = client.get("/pdf/doc_1_1")

        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == "doc_1_1"
        assert data["metadata"]["originalName"] == "doc.pdf"
        assert data["contentPreview"].endswith("... (truncated)")
        assert len(data["contentPreview"]) == 1000 + len("... (truncated)")
        assert "metadata.json" in data["files"]
        assert data["hasText"] is True
        assert data["chunkCount"] == 1
        assert data["embeddedChunks"] == []

    def test_get_pdf_lists_embedded_chunks(self, client, api_store):
        write_document(api_store, "doc_1_1", "[Page 2]\nsome text", chunks=["[Page 2]\nsome text", "more"])
        (api_store.document_path("doc_1_1") / "chunks_with_embeddings.json").write_text(json.dumps([
            {"id": "1_0", "content": "[Page 2]\nsome text", "embedding": [0.1, 0.2, 0.3],
             "chunkIndex": 0, "pageRef": 2},
        ]))

        data = client.get("/pdf/doc_1_1").json()

        assert data["chunkCount"] == 2
        assert data["embeddedChunks"] == [{"chunkIndex": 0, "pageRef": 2, "dimensions": 3}]

    def test_get_missing_pdf_is_404(self, client):
        resp = client.get("/pdf/does-not-exist")
        assert resp.status_code == 404
        assert resp.json() == {"error": "PDF not found"}

    def test_recent_limits_to_five(self, client, api_store):
        for i in range(7):
            write_document(
                api_store, f"d{i}_1_1", "text", name=f"d{i}.pdf",
                saved_at=f"2024-01-0{i + 1}T00:00:00.000+00:00",
            )

        data = client.get("/recent").json()

        assert data["total"] == 7
        assert [r["id"] for r in data["recent"]] == [f"d{i}_1_1" for i in range(6, 1, -1)]
        assert data["recent"][0]["size"] == "0.00 MB"


class TestSearchAndChat:

    def test_search_requires_query(self, client):
        resp = client.get("/search")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Search query is required"}

    def test_search_results(self, client, api_store):
        write_document(api_store, "terms_1_1", "...the refund policy allows returns within 30 days [Page 4]...")

        data = client.get("/search", params={"q": "refund policy"}).json()

        assert data["count"] == 1
        hit = data["results"][0]
        assert hit["documentId"] == "terms_1_1"
        assert hit["pageRef"] == 4
        assert hit["matchKind"] == "text_search"

    def test_chat_requires_message(self, client):
        resp = client.get("/chat")
        assert resp.status_code == 400

    def test_chat_without_documents(self, client, with_mock_llm):
        data = client.get("/chat", params={"message": "hello"}).json()

        assert data["hasPDFs"] is False
        assert data["hasAnswer"] is False
        with_mock_llm.generate_with_fallback.assert_not_called()

    def test_chat_falls_back_to_text_search(self, client, api_store, with_mock_llm):
        write_document(
            api_store, "terms_1_1",
            "Store terms. ...the refund policy allows returns within 30 days [Page 4]... End.",
            name="terms.pdf",
        )

        data = client.get("/chat", params={"message": "refund policy", "pdfId": "terms_1_1"}).json()

        assert data["source"] == "Text Search"
        assert data["hasAnswer"] is True
        assert data["pdfName"] == "terms.pdf"
        assert "Page 4" in data["message"]

    def test_chat_with_ai_answer(self, client, api_store, with_mock_llm):
        with_mock_llm.generate_with_fallback.side_effect = None
        with_mock_llm.generate_with_fallback.return_value = "Thirty days [Page 4]."
        write_document(api_store, "terms_1_1", "The refund policy allows returns within 30 days. " * 3)

        data = client.get("/chat", params={"message": "How long for refunds?"}).json()

        assert data == {
            "message": "Thirty days [Page 4].",
            "query": "How long for refunds?",
            "pdfName": "doc.pdf",
            "pdfId": "terms_1_1",
            "source": "AI Analysis",
            "hasAnswer": True,
        }

    def test_chat_unknown_pdf_lists_available(self, client, api_store, with_mock_llm):
        write_document(api_store, "terms_1_1", "some text " * 10, name="terms.pdf")

        data = client.get("/chat", params={"message": "hi", "pdfId": "nope"}).json()

        assert data["availablePDFs"] == [{"id": "terms_1_1", "name": "terms.pdf"}]

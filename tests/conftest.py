"""
Shared test fixtures: temporary storage, settings, PDF builders and a helper
for writing stored documents directly.
"""

from typing import List, Optional
from unittest.mock import AsyncMock

import fitz
import pytest

from pdf_buddy.config import Settings
from pdf_buddy.embeddings.embedder import Embedder
from pdf_buddy.storage.models import DocumentMetadata
from pdf_buddy.storage.store import DocumentStore


def make_pdf(pages: List[str]) -> bytes:
    """Build a real PDF with one text page per entry."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        y = 72
        for line in text.splitlines() or [""]:
            page.insert_text((72, y), line, fontsize=11)
            y += 14
    data = doc.tobytes()
    doc.close()
    return data


def write_document(
    store: DocumentStore,
    document_id: str,
    text: str,
    *,
    name: str = "doc.pdf",
    saved_at: str = "2024-01-01T00:00:00.000+00:00",
    extraction_success: bool = True,
    chunks: Optional[List[str]] = None,
) -> str:
    """Store a document as the pipeline would, bypassing extraction."""
    store.ensure_root()
    chunks = chunks if chunks is not None else [text]
    metadata = DocumentMetadata(
        job_id="1",
        file_name=name,
        original_name=name,
        saved_at=saved_at,
        file_size=2048,
        text_length=len(text),
        chunks_count=len(chunks),
        embeddings_generated=0,
        extraction_success=extraction_success,
        storage_path=str(store.document_path(document_id)),
    )
    store.save_document(
        document_id,
        original_bytes=b"%PDF-1.4 test",
        extracted_text=text,
        chunks=chunks,
        chunk_embeddings=[],
        metadata=metadata,
    )
    return document_id


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path / "pdf-storage")


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        _env_file=None,
        gemini_api_key=None,
        storage_dir=str(tmp_path / "pdf-storage"),
        upload_dir=str(tmp_path / "uploads"),
        embedding_delay_seconds=0,
    )


@pytest.fixture
def mock_embedder():
    mock = AsyncMock(spec=Embedder)
    mock.embed.return_value = [0.1, 0.2, 0.3]
    return mock


@pytest.fixture
def sample_pdf_bytes():
    return make_pdf(
        [
            "Refund Policy\nThe refund policy allows returns within 30 days.",
            "Shipping\nOrders ship within two business days of purchase.",
        ]
    )

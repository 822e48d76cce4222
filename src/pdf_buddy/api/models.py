"""
API Models for PDF Buddy

Response schemas for the upload, document, search and health endpoints.
Chat answers are described by retrieval.answer.ChatAnswer and search hits
by retrieval.search.SearchResult.

All models serialize with camelCase keys.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..retrieval.search import SearchResult
from ..storage.models import DocumentMetadata, DocumentSummary


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------
# Upload / Jobs
# ---------------------------------------------------------------------

class UploadResponse(ApiModel):
    success: bool = True
    message: str = "PDF uploaded and queued for processing"
    filename: str
    job_id: str
    status: Literal["queued"] = "queued"
    note: str = "PDF is being processed. You can ask questions about it shortly."


class JobStatusResponse(ApiModel):
    job_id: str
    filename: str
    status: Literal["queued", "active", "completed", "failed"]
    stage: Optional[str] = None
    pdf_id: Optional[str] = None
    error: Optional[str] = None
    enqueued_at: str
    finished_at: Optional[str] = None


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class DocumentListResponse(ApiModel):
    success: bool = True
    count: int = Field(..., ge=0)
    pdfs: List[DocumentSummary]


class EmbeddedChunk(ApiModel):
    chunk_index: int
    page_ref: Optional[int] = None
    dimensions: int


class DocumentDetailResponse(ApiModel):
    success: bool = True
    id: str
    metadata: DocumentMetadata
    content_preview: Optional[str] = None
    files: List[str]
    has_text: bool
    chunk_count: int = 0
    embedded_chunks: List[EmbeddedChunk] = Field(default_factory=list)


class RecentDocument(ApiModel):
    id: str
    name: str
    uploaded: str
    size: str


class RecentResponse(ApiModel):
    success: bool = True
    recent: List[RecentDocument]
    total: int = Field(..., ge=0)


# ---------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------

class SearchResponse(ApiModel):
    success: bool = True
    query: str
    results: List[SearchResult]
    count: int = Field(..., ge=0)


# ---------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------

class HealthResponse(ApiModel):
    status: str = "healthy"
    timestamp: str
    service: str = "PDF Buddy API"


class ModelProbeResponse(ApiModel):
    success: bool
    results: List[Dict[str, Any]]

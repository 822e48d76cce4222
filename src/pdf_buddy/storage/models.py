"""
Storage Data Models

Canonical schemas for the files written into each document directory:

- metadata.json                -> DocumentMetadata
- chunks_with_embeddings.json  -> list of ChunkEmbedding
- error.json                   -> ErrorRecord

All models serialize with camelCase keys so the on-disk layout is stable
regardless of the Python attribute names.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StoredModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class DocumentMetadata(StoredModel):
    """
    Summary record for one ingested PDF. Written last, so its presence marks
    the directory as a complete document.
    """

    job_id: str
    file_name: str
    original_name: Optional[str] = None
    saved_at: str
    file_size: int = Field(default=0, ge=0)
    text_length: int = Field(default=0, ge=0)
    chunks_count: int = Field(default=0, ge=0)
    embeddings_generated: int = Field(default=0, ge=0)
    extraction_success: bool = True
    storage_path: str

    @property
    def display_name(self) -> str:
        return self.original_name or self.file_name


class ChunkEmbedding(StoredModel):
    """One embedded chunk (id is `<job id>_<chunk index>`)."""

    id: str
    content: str
    embedding: List[float]
    chunk_index: int = Field(..., ge=0)
    page_ref: Optional[int] = None


class ErrorRecord(StoredModel):
    """Contents of error.json for a failed ingestion job."""

    job_id: str
    file_name: str
    error: str
    saved_at: str


class DocumentSummary(StoredModel):
    """Listing entry derived from a document's metadata."""

    id: str
    name: str
    original_name: str
    saved_at: str
    file_size: int
    text_length: int
    chunks: int
    embeddings: int
    extraction_success: bool
    path: str

"""Filesystem storage for ingested documents."""

from .models import ChunkEmbedding, DocumentMetadata, DocumentSummary, ErrorRecord
from .store import DocumentStore, sanitize_name

__all__ = [
    "ChunkEmbedding",
    "DocumentMetadata",
    "DocumentStore",
    "DocumentSummary",
    "ErrorRecord",
    "sanitize_name",
]

"""
Document Routes

Read-only views over the document store: listing, details and the most
recent uploads. Store reads run in a worker thread, so these never block on,
or interfere with, an in-flight ingestion job.
"""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_store
from .models import (
    DocumentDetailResponse,
    DocumentListResponse,
    EmbeddedChunk,
    RecentDocument,
    RecentResponse,
)
from ..storage.store import DocumentStore

router = APIRouter(tags=["documents"])

PREVIEW_CHARS = 1000
RECENT_LIMIT = 5


def format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f} MB"


def _load_details(store: DocumentStore, pdf_id: str) -> DocumentDetailResponse:
    metadata = store.get_metadata(pdf_id)
    preview = store.get_content(pdf_id, PREVIEW_CHARS)
    embedded = [
        EmbeddedChunk(
            chunk_index=record.chunk_index,
            page_ref=record.page_ref,
            dimensions=len(record.embedding),
        )
        for record in store.get_chunk_embeddings(pdf_id)
    ]

    return DocumentDetailResponse(
        id=pdf_id,
        metadata=metadata,
        content_preview=preview,
        files=store.list_files(pdf_id),
        has_text=preview is not None,
        chunk_count=len(store.get_chunks(pdf_id)),
        embedded_chunks=embedded,
    )


@router.get("/pdfs", response_model=DocumentListResponse, summary="List processed PDFs")
async def list_pdfs(
    store: Annotated[DocumentStore, Depends(get_store)],
) -> DocumentListResponse:
    pdfs = await asyncio.to_thread(store.list_documents)
    return DocumentListResponse(count=len(pdfs), pdfs=pdfs)


@router.get(
    "/pdf/{pdf_id}",
    response_model=DocumentDetailResponse,
    summary="Get one processed PDF",
)
async def get_pdf(
    pdf_id: str,
    store: Annotated[DocumentStore, Depends(get_store)],
) -> DocumentDetailResponse:
    """
    Return metadata, a short content preview, the stored file names, the
    chunk count and which chunks were embedded.
    Unknown ids raise DocumentNotFoundError, rendered as 404.
    """
    return await asyncio.to_thread(_load_details, store, pdf_id)


@router.get("/recent", response_model=RecentResponse, summary="Most recent uploads")
async def recent_pdfs(
    store: Annotated[DocumentStore, Depends(get_store)],
) -> RecentResponse:
    pdfs = await asyncio.to_thread(store.list_documents)
    recent = [
        RecentDocument(
            id=pdf.id,
            name=pdf.name,
            uploaded=pdf.saved_at,
            size=format_megabytes(pdf.file_size),
        )
        for pdf in pdfs[:RECENT_LIMIT]
    ]
    return RecentResponse(recent=recent, total=len(pdfs))

"""
Ingestion Pipeline

Turns one uploaded PDF into a stored document record.

States
------
    received -> extracting -> chunking -> embedding -> persisting -> complete
                                   (any) -> failed

Only an unreadable source file (or a storage failure while persisting) is
fatal. Extraction failures degrade to fallback or placeholder text and
embedding failures only shorten the embedding list.

On a fatal error the pipeline writes an `error_` record into the storage
root and raises FatalIngestionError. It never retries; retry policy belongs
to whoever feeds the queue.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .chunking import chunk_text
from .extraction import extract_pdf_text
from ..core.errors import ExtractionError, FatalIngestionError
from ..embeddings.embedder import Embedder
from ..embeddings.generator import generate_chunk_embeddings
from ..storage.models import ChunkEmbedding, DocumentMetadata, ErrorRecord
from ..storage.store import DocumentStore

logger = logging.getLogger("pdfbuddy.pipeline")


class IngestionState(str, Enum):
    RECEIVED = "received"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"


class IngestionJob(BaseModel):
    """Payload placed on the queue by the upload route."""

    job_id: str = ""
    filename: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    uploaded_at: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class IngestionResult(BaseModel):
    document_id: str
    file_name: str
    text_length: int
    chunks: int
    embeddings: int
    extraction_success: bool
    path: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass
class PipelineOptions:
    chunk_size: int = 1000
    chunk_overlap: int = 200
    max_chunks: int = 50
    max_embedded_chunks: int = 10
    min_embed_chars: int = 20
    embedding_delay_seconds: float = 0.1


StateListener = Callable[[IngestionState], None]


def placeholder_text(file_name: str) -> str:
    return (
        f"PDF: {file_name}\n\n"
        "Note: Text extraction partially failed. Some PDFs with complex "
        "formatting or images may not extract all text.\n\n"
        "Try asking questions about the PDF content anyway."
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class IngestionPipeline:
    """
    Runs extraction, chunking, embedding and persistence for one job.

    Instances are stateless between runs; the queue guarantees that only one
    run is active at a time.
    """

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        options: Optional[PipelineOptions] = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.options = options or PipelineOptions()

    async def run(
        self,
        job: IngestionJob,
        on_state: Optional[StateListener] = None,
    ) -> IngestionResult:
        state = IngestionState.RECEIVED

        def advance(new_state: IngestionState) -> None:
            nonlocal state
            logger.debug("Job %s: %s -> %s", job.job_id, state.value, new_state.value)
            state = new_state
            if on_state is not None:
                on_state(new_state)

        source = Path(job.path.replace("\\", "/"))
        file_name = source.name
        logger.info("Job %s: processing file %s", job.job_id, file_name)

        try:
            data = await asyncio.to_thread(self._read_source, source, job.job_id)

            advance(IngestionState.EXTRACTING)
            text, extraction_success = await self._extract(data, file_name)

            advance(IngestionState.CHUNKING)
            chunks = chunk_text(
                text,
                chunk_size=self.options.chunk_size,
                overlap=self.options.chunk_overlap,
                max_chunks=self.options.max_chunks,
            )
            logger.info("Split into %d text chunks", len(chunks))

            advance(IngestionState.EMBEDDING)
            embeddings = await generate_chunk_embeddings(
                chunks,
                self.embedder,
                job_id=job.job_id,
                max_chunks=self.options.max_embedded_chunks,
                min_chars=self.options.min_embed_chars,
                delay_seconds=self.options.embedding_delay_seconds,
            )

            advance(IngestionState.PERSISTING)
            result = await asyncio.to_thread(
                self._persist,
                job,
                file_name=file_name,
                data=data,
                text=text,
                chunks=[c.text for c in chunks],
                embeddings=embeddings,
                extraction_success=extraction_success,
            )
        except Exception as exc:
            advance(IngestionState.FAILED)
            self._record_failure(job, file_name, exc)
            if isinstance(exc, FatalIngestionError):
                raise
            raise FatalIngestionError(str(exc), job_id=job.job_id) from exc

        advance(IngestionState.COMPLETE)
        logger.info(
            "Successfully processed %s: %d chars, %d chunks, %d embeddings -> %s",
            file_name,
            result.text_length,
            result.chunks,
            result.embeddings,
            result.path,
        )
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _read_source(source: Path, job_id: str) -> bytes:
        try:
            return source.read_bytes()
        except OSError as exc:
            raise FatalIngestionError(
                f"Source file is not readable: {source} ({exc.strerror or exc})",
                job_id=job_id,
            ) from exc

    @staticmethod
    async def _extract(data: bytes, file_name: str) -> tuple[str, bool]:
        try:
            result = await asyncio.to_thread(extract_pdf_text, data, file_name)
        except ExtractionError as exc:
            logger.warning(
                "Using placeholder due to extraction error: %s", exc.message
            )
            return placeholder_text(file_name), False
        return result.text, result.succeeded

    def _persist(
        self,
        job: IngestionJob,
        *,
        file_name: str,
        data: bytes,
        text: str,
        chunks: List[str],
        embeddings: List[ChunkEmbedding],
        extraction_success: bool,
    ) -> IngestionResult:
        document_id = self.store.new_document_id(file_name, job.job_id)
        path = self.store.document_path(document_id)

        metadata = DocumentMetadata(
            job_id=job.job_id,
            file_name=file_name,
            original_name=job.filename or file_name,
            saved_at=_utc_now(),
            file_size=len(data),
            text_length=len(text),
            chunks_count=len(chunks),
            embeddings_generated=len(embeddings),
            extraction_success=extraction_success,
            storage_path=str(path),
        )

        self.store.save_document(
            document_id,
            original_bytes=data,
            extracted_text=text,
            chunks=chunks,
            chunk_embeddings=embeddings,
            metadata=metadata,
        )

        return IngestionResult(
            document_id=document_id,
            file_name=file_name,
            text_length=len(text),
            chunks=len(chunks),
            embeddings=len(embeddings),
            extraction_success=extraction_success,
            path=str(path),
        )

    def _record_failure(self, job: IngestionJob, file_name: str, exc: Exception) -> None:
        logger.error("Error processing %s: %s", file_name, exc)
        record = ErrorRecord(
            job_id=job.job_id,
            file_name=file_name,
            error=str(exc),
            saved_at=_utc_now(),
        )
        try:
            self.store.ensure_root()
            path = self.store.save_error(record)
        except OSError as save_exc:
            logger.error("Could not save error details: %s", save_exc)
            return
        logger.info("Error record written to %s", path)

"""
Upload Routes

Accepts a single PDF, stores it in the upload directory and enqueues an
ingestion job. Processing happens in the background worker; the response
only confirms that the job was queued.
"""

import asyncio
import logging
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from .dependencies import get_job_queue, get_settings
from .models import JobStatusResponse, UploadResponse
from ..config import Settings
from ..core.errors import ValidationError
from ..ingestion.pipeline import IngestionJob
from ..ingestion.queue import JobQueue
from ..storage.store import now_millis

logger = logging.getLogger("pdfbuddy.upload")

router = APIRouter(tags=["upload"])

PDF_CONTENT_TYPE = "application/pdf"


def _unique_upload_name(filename: str) -> str:
    return f"{now_millis()}-{random.randint(0, 10**9)}-{Path(filename).name}"


@router.post(
    "/upload/pdf",
    response_model=UploadResponse,
    summary="Upload a PDF for background ingestion",
)
async def upload_pdf(
    settings: Annotated[Settings, Depends(get_settings)],
    queue: Annotated[JobQueue, Depends(get_job_queue)],
    pdf: Optional[UploadFile] = File(default=None),
) -> UploadResponse:
    if pdf is None or not pdf.filename:
        raise ValidationError("No file uploaded")

    if pdf.content_type != PDF_CONTENT_TYPE:
        raise ValidationError("Only PDF files are allowed")

    limit = settings.max_upload_bytes
    data = await pdf.read(limit + 1)
    if len(data) > limit:
        raise ValidationError(f"File size exceeds {limit // (1024 * 1024)}MB limit")

    logger.info("Upload received: %s", pdf.filename)

    upload_dir = settings.upload_path
    upload_dir.mkdir(parents=True, exist_ok=True)
    target = upload_dir / _unique_upload_name(pdf.filename)
    await asyncio.to_thread(target.write_bytes, data)

    record = await queue.enqueue(
        IngestionJob(
            filename=pdf.filename,
            path=str(target),
            uploaded_at=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        )
    )

    return UploadResponse(filename=pdf.filename, job_id=record.job_id)


@router.get(
    "/jobs/{job_id}",
    response_model=JobStatusResponse,
    summary="Get the status of an ingestion job",
)
async def get_job(
    job_id: str,
    queue: Annotated[JobQueue, Depends(get_job_queue)],
) -> JobStatusResponse:
    record = queue.get(job_id)
    return JobStatusResponse(
        job_id=record.job_id,
        filename=record.job.filename,
        status=record.status,
        stage=record.stage,
        pdf_id=record.document_id,
        error=record.error,
        enqueued_at=record.enqueued_at,
        finished_at=record.finished_at,
    )

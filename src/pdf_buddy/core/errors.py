"""
Error Taxonomy and Global Error Handling

This module defines the domain exceptions raised across PDF Buddy and the
FastAPI exception handlers that turn them into HTTP responses.

Taxonomy
--------
- ValidationError        bad upload or missing query parameter (400)
- ExtractionError        PDF text could not be recovered; handled by the
                         ingestion pipeline with placeholder text
- EmbeddingError         one chunk failed to embed; logged and skipped
- ExternalServiceError   the generative model could not answer; handled by
                         falling back to text search
- StorageError           a stored document or file is missing (404)
- FatalIngestionError    the source upload is unreadable; the job fails
- JobNotFoundError       unknown queue job id (404)
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("pdfbuddy.errors")


# ---------------------------------------------------------------------
# Domain Exceptions
# ---------------------------------------------------------------------

class PDFBuddyError(Exception):
    """Base class for all domain errors. Carries the HTTP status to use."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PDFBuddyError):
    """Raised for invalid client input (upload type/size, missing params)."""

    status_code = 400


class ExtractionError(PDFBuddyError):
    """Raised when neither the PDF parser nor the raw fallback yields text."""


class EmbeddingError(PDFBuddyError):
    """Raised when embedding generation fails or returns a malformed response."""

    status_code = 502


class ExternalServiceError(PDFBuddyError):
    """Raised when the generative model service is unavailable."""

    status_code = 503


class StorageError(PDFBuddyError):
    """Raised when a stored document or one of its files cannot be read."""

    status_code = 404


class DocumentNotFoundError(StorageError):
    """Raised when no document directory exists for an id."""

    def __init__(self, document_id: str) -> None:
        super().__init__("PDF not found")
        self.document_id = document_id


class FatalIngestionError(PDFBuddyError):
    """Raised when an ingestion job cannot proceed (e.g. missing source file)."""

    def __init__(self, message: str, job_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.job_id = job_id


class JobNotFoundError(PDFBuddyError):
    """Raised when a queue job id is unknown."""

    status_code = 404

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def domain_error_handler(
    request: Request,
    exc: PDFBuddyError,
) -> JSONResponse:
    """
    Translate a domain error into a JSON response using its status code.

    Client errors (4xx) are logged at INFO; anything else at ERROR.
    """
    if exc.status_code < 500:
        logger.info(
            "Request rejected: %s %s -> %d (%s)",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    else:
        logger.error(
            "Domain error during request: %s %s -> %s",
            request.method,
            request.url.path,
            exc.message,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Last-resort handler: anything that escapes a route and is not a
    PDFBuddyError ends up here. The traceback goes to the log, the client
    only sees a generic 500 body.
    """
    logger.exception(
        "Unexpected failure handling %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": "Internal server error"},
    )

"""
PDF Buddy Application Entry Point

This module defines the FastAPI application factory, registers all routers,
configures exception handling, and owns the lifecycle of long-lived
services.

Startup order
-------------
1. Document store (storage root created)
2. External clients (embedding, generative model)
3. Ingestion pipeline
4. Job queue + its single worker task

Shutdown cancels the worker; in-flight jobs are abandoned and their upload
files stay in the upload directory.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from . import __version__
from .config import Settings, settings as default_settings
from .core.errors import PDFBuddyError, domain_error_handler, unhandled_exception_handler
from .embeddings.embedder import Embedder
from .ingestion.pipeline import IngestionPipeline, IngestionResult, PipelineOptions
from .ingestion.queue import JobQueue, JobRecord
from .llm.client import LLMClient
from .retrieval.answer import AnswerService
from .retrieval.search import TextSearcher
from .storage.store import DocumentStore

from .api import (
    document_routes,
    health_routes,
    search_routes,
    upload_routes,
)


logger = logging.getLogger("pdfbuddy.app")


# ---------------------------------------------------------------------
# Queue listeners
# ---------------------------------------------------------------------

def _log_job_completed(record: JobRecord, result: IngestionResult) -> None:
    logger.info(
        "Job completed: %s (%d chars, %d chunks, %d embeddings) PDF ID: %s",
        result.file_name,
        result.text_length,
        result.chunks,
        result.embeddings,
        result.document_id,
    )


def _log_job_failed(record: JobRecord, exc: BaseException) -> None:
    logger.error("Job failed: %s - %s", record.job_id, exc)


# ---------------------------------------------------------------------
# Lifespan (service construction and disposal)
# ---------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    cfg: Settings = app.state.settings
    logger.info("Starting PDF Buddy")

    store = DocumentStore(cfg.storage_path)
    store.ensure_root()
    logger.info("Storage: %s", store.root.resolve())

    api_key = cfg.gemini_api_key.get_secret_value() if cfg.gemini_api_key else None
    if not api_key:
        logger.warning(
            "GEMINI_API_KEY is not set: embeddings are skipped and chat "
            "answers fall back to text search"
        )

    embedder = Embedder(
        api_key,
        model=cfg.embedding_model,
        base_url=cfg.gemini_base_url,
        timeout=cfg.http_timeout,
    )
    llm = LLMClient(
        api_key,
        models=cfg.chat_models,
        base_url=cfg.gemini_base_url,
        timeout=cfg.http_timeout,
    )

    pipeline = IngestionPipeline(
        store,
        embedder,
        PipelineOptions(
            chunk_size=cfg.chunk_size,
            chunk_overlap=cfg.chunk_overlap,
            max_chunks=cfg.max_chunks,
            max_embedded_chunks=cfg.max_embedded_chunks,
            min_embed_chars=cfg.min_embed_chars,
            embedding_delay_seconds=cfg.embedding_delay_seconds,
        ),
    )

    searcher = TextSearcher(store, content_chars=cfg.search_context_chars)

    queue = JobQueue(history_limit=cfg.job_history_limit)
    queue.on_complete(_log_job_completed)
    queue.on_failed(_log_job_failed)
    queue.start(pipeline.run)

    app.state.store = store
    app.state.llm = llm
    app.state.embedder = embedder
    app.state.pipeline = pipeline
    app.state.job_queue = queue
    app.state.searcher = searcher
    app.state.answer_service = AnswerService(
        store,
        llm,
        searcher,
        context_chars=cfg.answer_context_chars,
        min_content_chars=cfg.min_content_chars,
    )

    try:
        yield
    finally:
        logger.info("Shutting down PDF Buddy")
        await queue.stop()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration to use. Defaults to the environment-loaded settings;
        tests pass their own (e.g. with a temporary storage directory).
    """
    cfg = settings or default_settings
    logging.basicConfig(level=cfg.log_level)

    app = FastAPI(
        title="PDF Buddy API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = cfg

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(PDFBuddyError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(upload_routes.router)
    app.include_router(document_routes.router)
    app.include_router(search_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()

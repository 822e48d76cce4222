"""
Search and Chat Routes

- GET /search  ranked substring/filename matches across stored PDFs
- GET /chat    answer a question about one PDF (AI first, text search
               as the fallback)
"""

import asyncio
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from .dependencies import get_answer_service, get_searcher
from .models import SearchResponse
from ..core.errors import ValidationError
from ..retrieval.answer import AnswerService, ChatAnswer
from ..retrieval.search import TextSearcher

logger = logging.getLogger("pdfbuddy.routes")

router = APIRouter(tags=["search"])


def _require(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message)
    return value


@router.get("/search", response_model=SearchResponse, summary="Text search over PDFs")
async def search(
    searcher: Annotated[TextSearcher, Depends(get_searcher)],
    q: Optional[str] = Query(default=None),
    pdf_id: Optional[str] = Query(default=None, alias="pdfId"),
) -> SearchResponse:
    query = _require(q, "Search query is required")
    results = await asyncio.to_thread(searcher.search, query, pdf_id)
    return SearchResponse(query=query, results=results, count=len(results))


@router.get(
    "/chat",
    response_model=ChatAnswer,
    response_model_exclude_none=True,
    summary="Ask a question about an uploaded PDF",
)
async def chat(
    answers: Annotated[AnswerService, Depends(get_answer_service)],
    message: Optional[str] = Query(default=None),
    pdf_id: Optional[str] = Query(default=None, alias="pdfId"),
) -> ChatAnswer:
    query = _require(message, "Message query parameter is required")
    logger.info("Chat request: %r%s", query, f" for PDF: {pdf_id}" if pdf_id else "")
    return await answers.answer(query, pdf_id)

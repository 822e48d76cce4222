"""
Retrieval/Answer Service

Answers a free-text question about one stored document.

Workflow
--------
1. No documents stored          -> "no documents" answer.
2. Resolve the target document  -> unknown id lists what is available;
                                   no id picks the most recent document.
3. Unreadable/short content     -> "couldn't read" answer.
4. Ask the generative model, trying each configured model in order.
5. If every model fails         -> text search within the document.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .search import TextSearcher
from ..core.errors import ExternalServiceError
from ..llm.client import LLMClient
from ..llm.prompts import build_answer_prompt
from ..storage.store import DocumentStore

logger = logging.getLogger("pdfbuddy.answer")

AnswerSource = Literal["AI Analysis", "Text Search", "No Match Found"]


class DocumentRef(BaseModel):
    id: str
    name: str


class ChatAnswer(BaseModel):
    message: str
    query: str
    pdf_name: Optional[str] = None
    pdf_id: Optional[str] = None
    source: Optional[AnswerSource] = None
    has_answer: bool = False
    has_pdfs: Optional[bool] = Field(default=None, alias="hasPDFs")
    matches: Optional[int] = None
    available_pdfs: Optional[List[DocumentRef]] = Field(default=None, alias="availablePDFs")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnswerService:
    def __init__(
        self,
        store: DocumentStore,
        llm: LLMClient,
        searcher: TextSearcher,
        context_chars: int = 4000,
        min_content_chars: int = 50,
    ) -> None:
        self.store = store
        self.llm = llm
        self.searcher = searcher
        self.context_chars = context_chars
        self.min_content_chars = min_content_chars

    async def answer(self, query: str, document_id: Optional[str] = None) -> ChatAnswer:
        documents = await asyncio.to_thread(self.store.list_documents)

        if not documents:
            return ChatAnswer(
                message="No PDFs found. Please upload a PDF file first.",
                query=query,
                has_pdfs=False,
            )

        if document_id:
            target = next((d for d in documents if d.id == document_id), None)
            if target is None:
                names = ", ".join(d.name for d in documents)
                return ChatAnswer(
                    message=f"PDF with ID {document_id} not found. Available PDFs: {names}",
                    query=query,
                    available_pdfs=[DocumentRef(id=d.id, name=d.name) for d in documents],
                )
        else:
            target = documents[0]

        content = await asyncio.to_thread(
            self.store.get_content, target.id, self.context_chars
        )
        if not content or len(content) < self.min_content_chars:
            return ChatAnswer(
                message=(
                    f'Found PDF "{target.name}" but couldn\'t read its content '
                    "properly. Please try re-uploading the PDF."
                ),
                query=query,
                pdf_name=target.name,
                pdf_id=target.id,
            )

        try:
            reply = await self.llm.generate_with_fallback(
                build_answer_prompt(query, content, target.name)
            )
        except ExternalServiceError as exc:
            logger.info("AI answer failed, falling back to text search: %s", exc.message)
        else:
            return ChatAnswer(
                message=reply,
                query=query,
                pdf_name=target.name,
                pdf_id=target.id,
                source="AI Analysis",
                has_answer=True,
            )

        results = await asyncio.to_thread(
            self.searcher.search, query, target.id, documents=documents
        )
        if results:
            best = results[0]
            page = f", Page {best.page_ref}" if best.page_ref else ""
            return ChatAnswer(
                message=(
                    f'Based on "{target.name}":\n\n{best.context}\n\n'
                    f"(Found via text search{page})"
                ),
                query=query,
                pdf_name=target.name,
                pdf_id=target.id,
                source="Text Search",
                has_answer=True,
                matches=len(results),
            )

        return ChatAnswer(
            message=(
                f'I searched through "{target.name}" but couldn\'t find information '
                f'about "{query}". Try asking a different question or check if the '
                "PDF contains that information."
            ),
            query=query,
            pdf_name=target.name,
            pdf_id=target.id,
            source="No Match Found",
            has_answer=False,
        )

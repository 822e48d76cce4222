"""
Text Search

Case-insensitive substring search over stored documents. A content match
scores 100 and carries a context window around the first occurrence; a match
against the document name scores 80. Results are merged across documents and
sorted by score, highest first.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.pages import parse_page_ref
from ..storage.models import DocumentSummary
from ..storage.store import DocumentStore

logger = logging.getLogger("pdfbuddy.search")

CONTENT_MATCH_SCORE = 100
FILENAME_MATCH_SCORE = 80


class SearchResult(BaseModel):
    document_id: str
    name: str
    score: int = Field(..., ge=0, le=100)
    context: str
    page_ref: Optional[int] = None
    match_kind: Literal["text_search", "filename"]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def find_context(
    content: str,
    query: str,
    radius: int = 150,
) -> Optional[str]:
    """
    Return the text around the first case-insensitive occurrence of query,
    `radius` characters on each side, or None when there is no match.
    """
    needle = query.lower()
    index = content.lower().find(needle)
    if index < 0:
        return None
    start = max(0, index - radius)
    end = min(len(content), index + len(needle) + radius)
    return content[start:end]


class TextSearcher:
    def __init__(
        self,
        store: DocumentStore,
        content_chars: int = 5000,
        context_radius: int = 150,
    ) -> None:
        self.store = store
        self.content_chars = content_chars
        self.context_radius = context_radius

    def search(
        self,
        query: str,
        document_id: Optional[str] = None,
        documents: Optional[Sequence[DocumentSummary]] = None,
    ) -> List[SearchResult]:
        """
        Search every document, or only `document_id` when given.

        `documents` may be passed to reuse a listing the caller already has.
        """
        if documents is None:
            documents = self.store.list_documents()
        if document_id:
            documents = [d for d in documents if d.id == document_id]

        query_lower = query.lower()
        results: List[SearchResult] = []

        for doc in documents:
            content = self.store.get_content(doc.id, self.content_chars)
            if not content:
                continue

            context = find_context(content, query, self.context_radius)
            if context is not None:
                results.append(
                    SearchResult(
                        document_id=doc.id,
                        name=doc.name,
                        score=CONTENT_MATCH_SCORE,
                        context=f"...{context}...",
                        page_ref=parse_page_ref(context),
                        match_kind="text_search",
                    )
                )

            if query_lower in doc.name.lower():
                results.append(
                    SearchResult(
                        document_id=doc.id,
                        name=doc.name,
                        score=FILENAME_MATCH_SCORE,
                        context=f"Filename matches: {doc.name}",
                        match_kind="filename",
                    )
                )

        results.sort(key=lambda r: r.score, reverse=True)
        logger.debug("Search for %r returned %d results", query, len(results))
        return results

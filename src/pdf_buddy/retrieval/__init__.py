"""Query-time retrieval: text search and question answering."""

from .answer import AnswerService, ChatAnswer
from .search import SearchResult, TextSearcher

__all__ = ["AnswerService", "ChatAnswer", "SearchResult", "TextSearcher"]

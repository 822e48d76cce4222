from unittest.mock import AsyncMock

import pytest

from pdf_buddy.core.errors import ExternalServiceError
from pdf_buddy.llm.client import LLMClient
from pdf_buddy.retrieval.answer import AnswerService
from pdf_buddy.retrieval.search import TextSearcher, find_context

from conftest import write_document

REFUND_TEXT = (
    "[Page 3]\nGeneral terms and conditions apply to every order placed online. "
    "...the refund policy allows returns within 30 days [Page 4]... "
    "Customers must keep their receipt."
)


@pytest.fixture
def searcher(store):
    return TextSearcher(store)


@pytest.fixture
def mock_llm():
    mock = AsyncMock(spec=LLMClient)
    mock.generate_with_fallback.return_value = "Returns are accepted within 30 days [Page 4]."
    return mock


@pytest.fixture
def service(store, mock_llm, searcher):
    return AnswerService(store, mock_llm, searcher)


class TestFindContext:

    def test_window_around_first_match(self):
        content = "a" * 300 + "NEEDLE" + "b" * 300 + "needle"
        context = find_context(content, "needle", radius=150)
        assert context == "a" * 150 + "NEEDLE" + "b" * 150

    def test_window_clipped_at_edges(self):
        assert find_context("needle here", "NEEDLE") == "needle here"

    def test_no_match(self):
        assert find_context("nothing", "needle") is None


class TestTextSearcher:

    def test_refund_policy_match_has_page_ref(self, store, searcher):
        write_document(store, "terms.pdf_1_1", "...the refund policy allows returns within 30 days [Page 4]...")

        results = searcher.search("refund policy")

        assert len(results) == 1
        hit = results[0]
        assert hit.match_kind == "text_search"
        assert hit.score == 100
        assert "the refund policy allows returns within 30 days" in hit.context
        assert hit.page_ref == 4
        assert hit.document_id == "terms.pdf_1_1"

    def test_case_insensitive_and_wrapped_in_ellipses(self, store, searcher):
        write_document(store, "d_1_1", "Intro. The REFUND Policy is generous.")

        hit = searcher.search("refund policy")[0]

        assert hit.context.startswith("...") and hit.context.endswith("...")
        assert "REFUND Policy" in hit.context
        assert hit.page_ref is None

    def test_filename_match_scores_lower(self, store, searcher):
        write_document(store, "a_1_1", "mentions invoice in the body", name="invoice-2024.pdf")
        write_document(store, "b_2_2", "unrelated body text", name="invoice-old.pdf")

        results = searcher.search("invoice")

        assert [r.score for r in results] == [100, 80, 80]
        assert results[0].document_id == "a_1_1"
        filename_hits = [r for r in results if r.match_kind == "filename"]
        assert {r.document_id for r in filename_hits} == {"a_1_1", "b_2_2"}
        assert all(r.page_ref is None for r in filename_hits)
        assert "Filename matches: invoice-old.pdf" in [r.context for r in filename_hits]

    def test_filter_by_document_id(self, store, searcher):
        write_document(store, "a_1_1", "shared phrase here")
        write_document(store, "b_2_2", "shared phrase here too")

        results = searcher.search("shared phrase", document_id="b_2_2")

        assert [r.document_id for r in results] == ["b_2_2"]

    def test_only_first_5000_chars_searched(self, store, searcher):
        write_document(store, "long_1_1", "x" * 6000 + " hidden treasure")

        assert searcher.search("hidden treasure") == []

    def test_empty_store(self, searcher):
        assert searcher.search("anything") == []


class TestAnswerService:

    @pytest.mark.asyncio
    async def test_no_documents(self, service, mock_llm):
        answer = await service.answer("what is this?")

        assert answer.has_pdfs is False
        assert answer.has_answer is False
        mock_llm.generate_with_fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_document_lists_available(self, store, service, mock_llm):
        write_document(store, "a_1_1", REFUND_TEXT, name="terms.pdf")
        write_document(store, "b_2_2", REFUND_TEXT, name="faq.pdf")

        answer = await service.answer("refund?", document_id="missing")

        assert "missing" in answer.message
        assert {(d.id, d.name) for d in answer.available_pdfs} == {
            ("a_1_1", "terms.pdf"),
            ("b_2_2", "faq.pdf"),
        }
        assert answer.has_answer is False
        mock_llm.generate_with_fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_defaults_to_most_recent_document(self, store, service, mock_llm):
        write_document(store, "old_1_1", REFUND_TEXT, name="old.pdf", saved_at="2024-01-01T00:00:00.000+00:00")
        write_document(store, "new_2_2", REFUND_TEXT, name="new.pdf", saved_at="2024-06-01T00:00:00.000+00:00")

        answer = await service.answer("refund?")

        assert answer.pdf_id == "new_2_2"
        assert answer.source == "AI Analysis"
        assert answer.has_answer is True
        prompt = mock_llm.generate_with_fallback.await_args.args[0]
        assert "new.pdf" in prompt
        assert "refund?" in prompt
        assert "The PDF doesn't contain information about this." in prompt

    @pytest.mark.asyncio
    async def test_short_content_is_unreadable(self, store, service, mock_llm):
        write_document(store, "tiny_1_1", "too short", name="tiny.pdf")

        answer = await service.answer("anything")

        assert "couldn't read its content" in answer.message
        assert answer.pdf_id == "tiny_1_1"
        assert answer.has_answer is False
        mock_llm.generate_with_fallback.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_content_truncated(self, store, service, mock_llm):
        write_document(store, "big_1_1", "word " * 2000)

        await service.answer("question")

        prompt = mock_llm.generate_with_fallback.await_args.args[0]
        assert "... (truncated)" in prompt

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back_to_text_search(self, store, service, mock_llm):
        mock_llm.generate_with_fallback.side_effect = ExternalServiceError("all models failed")
        write_document(store, "terms_1_1", REFUND_TEXT, name="terms.pdf")

        answer = await service.answer("refund policy")

        assert answer.source == "Text Search"
        assert answer.has_answer is True
        assert "the refund policy allows returns within 30 days" in answer.message
        assert "Page 4" in answer.message
        assert answer.matches == 1

    @pytest.mark.asyncio
    async def test_ai_failure_and_no_match(self, store, service, mock_llm):
        mock_llm.generate_with_fallback.side_effect = ExternalServiceError("down")
        write_document(store, "terms_1_1", REFUND_TEXT, name="terms.pdf")

        answer = await service.answer("warranty")

        assert answer.source == "No Match Found"
        assert answer.has_answer is False
        assert "warranty" in answer.message

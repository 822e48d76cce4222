"""
Dependency providers.

Every long-lived service is built once in the application lifespan and
stored on `app.state`; routes receive them through these providers, which
tests replace with `app.dependency_overrides`.
"""

from fastapi import Request

from ..config import Settings
from ..ingestion.queue import JobQueue
from ..llm.client import LLMClient
from ..retrieval.answer import AnswerService
from ..retrieval.search import TextSearcher
from ..storage.store import DocumentStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


def get_llm_client(request: Request) -> LLMClient:
    return request.app.state.llm


def get_searcher(request: Request) -> TextSearcher:
    return request.app.state.searcher


def get_answer_service(request: Request) -> AnswerService:
    return request.app.state.answer_service

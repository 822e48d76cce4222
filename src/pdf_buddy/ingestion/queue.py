"""
Async queue for background PDF ingestion jobs.

The queue is an in-memory FIFO with a single worker task, so at most one
ingestion runs at a time. Listeners registered with `on_complete` and
`on_failed` are notified after every job.
"""
import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Deque, Dict, List, Optional

from .pipeline import IngestionJob, IngestionResult, IngestionState
from ..core.errors import JobNotFoundError

logger = logging.getLogger("pdfbuddy.queue")

JobProcessor = Callable[[IngestionJob, Callable[[IngestionState], None]], Awaitable[IngestionResult]]
CompleteHandler = Callable[["JobRecord", IngestionResult], None]
FailedHandler = Callable[["JobRecord", BaseException], None]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass
class JobRecord:
    """Tracks one job through the queue."""
    job: IngestionJob
    status: str = "queued"
    stage: Optional[str] = None
    document_id: Optional[str] = None
    error: Optional[str] = None
    enqueued_at: str = field(default_factory=_now)
    finished_at: Optional[str] = None

    @property
    def job_id(self) -> str:
        return self.job.job_id


class JobQueue:
    """
    FIFO job queue consumed by one worker task.

    Finished records are kept for status lookups; once more than
    `history_limit` jobs have finished, the oldest finished records are
    forgotten. Queued and active records are never evicted.
    """

    def __init__(self, history_limit: int = 1000) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be positive")
        self.history_limit = history_limit
        self._queue: asyncio.Queue[JobRecord] = asyncio.Queue()
        self._records: Dict[str, JobRecord] = {}
        self._finished: Deque[str] = deque()
        self._ids = itertools.count(1)
        self._complete_handlers: List[CompleteHandler] = []
        self._failed_handlers: List[FailedHandler] = []
        self._worker: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def enqueue(self, job: IngestionJob) -> JobRecord:
        """Assign a job id, add the job to the queue and return its record."""
        job = job.model_copy(update={"job_id": str(next(self._ids))})
        record = JobRecord(job=job)
        self._records[job.job_id] = record
        await self._queue.put(record)
        logger.info(
            "Job enqueued: %s (id=%s, queue size: %d)",
            job.filename,
            job.job_id,
            self._queue.qsize(),
        )
        return record

    def get(self, job_id: str) -> JobRecord:
        try:
            return self._records[job_id]
        except KeyError:
            raise JobNotFoundError(job_id) from None

    def qsize(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_complete(self, handler: CompleteHandler) -> None:
        self._complete_handlers.append(handler)

    def on_failed(self, handler: FailedHandler) -> None:
        self._failed_handlers.append(handler)

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self, processor: JobProcessor) -> asyncio.Task:
        if self.running:
            raise RuntimeError("Worker already started")
        self._worker = asyncio.create_task(self._run_worker(processor))
        return self._worker

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def join(self) -> None:
        """Wait until every enqueued job has been processed."""
        await self._queue.join()

    async def _run_worker(self, processor: JobProcessor) -> None:
        logger.info("Ingestion worker started.")
        while True:
            try:
                record = await self._queue.get()
            except asyncio.CancelledError:
                logger.info("Ingestion worker cancelled.")
                raise

            try:
                await self._process(record, processor)
            finally:
                self._queue.task_done()

    async def _process(self, record: JobRecord, processor: JobProcessor) -> None:
        record.status = "active"
        logger.info("Job %s: starting processing", record.job_id)

        def on_state(state: IngestionState) -> None:
            record.stage = state.value

        try:
            result = await processor(record.job, on_state)
        except Exception as exc:
            record.status = "failed"
            record.error = str(exc)
            self._finish(record)
            self._notify(self._failed_handlers, record, exc)
            return

        record.status = "completed"
        record.document_id = result.document_id
        self._finish(record)
        self._notify(self._complete_handlers, record, result)

    def _finish(self, record: JobRecord) -> None:
        record.finished_at = _now()
        self._finished.append(record.job_id)
        while len(self._finished) > self.history_limit:
            self._records.pop(self._finished.popleft(), None)

    @staticmethod
    def _notify(handlers, record: JobRecord, payload) -> None:
        for handler in handlers:
            try:
                handler(record, payload)
            except Exception:
                logger.exception("Queue listener raised for job %s", record.job_id)

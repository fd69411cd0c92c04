"""Bounded worker pool for extraction jobs.

Submissions are placed on a fixed-capacity asyncio queue and consumed by a
fixed number of worker tasks. A full queue rejects new submissions instead
of spawning more concurrent work.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from audiodrop.exceptions import QueueFullError
from audiodrop.models.domain import SubmissionRequest

logger = logging.getLogger(__name__)


@dataclass
class QueuedJob:
    """A job waiting for a worker."""

    job_id: str
    request: SubmissionRequest
    base_url: str | None = None
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def queued_seconds(self, now: datetime | None = None) -> float:
        """Time spent waiting for a worker so far."""
        return ((now or datetime.now(UTC)) - self.enqueued_at).total_seconds()


JobHandler = Callable[[QueuedJob], Awaitable[None]]


class JobWorkerPool:
    """Fixed-size pool of workers draining a bounded job queue."""

    def __init__(
        self,
        handler: JobHandler,
        worker_count: int = 4,
        max_queued: int = 100,
    ) -> None:
        """Initialize the pool.

        Args:
            handler: Coroutine function run for every job.
            worker_count: Number of jobs processed concurrently.
            max_queued: Jobs allowed to wait for a worker.
        """
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        if max_queued < 1:
            raise ValueError("max_queued must be at least 1")

        self._handler = handler
        self.worker_count = worker_count
        self.capacity = max_queued
        self._queue: asyncio.Queue[QueuedJob] = asyncio.Queue(maxsize=max_queued)
        self._workers: list[asyncio.Task] = []
        self._active = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_depth(self) -> int:
        """Jobs waiting for a worker."""
        return self._queue.qsize()

    @property
    def active_count(self) -> int:
        """Jobs currently being processed."""
        return self._active

    @property
    def is_full(self) -> bool:
        return self._queue.full()

    def submit(self, job: QueuedJob) -> None:
        """Queue a job without waiting.

        Raises:
            QueueFullError: If the queue is at capacity.
        """
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning("Rejecting job %s: queue full (%d)", job.job_id, self.capacity)
            raise QueueFullError(self.capacity) from None
        logger.info("Job %s queued (depth=%d)", job.job_id, self._queue.qsize())

    async def start(self) -> None:
        """Start the worker tasks."""
        if self._running:
            logger.warning("JobWorkerPool is already running")
            return

        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"job-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(
            "JobWorkerPool started with %d workers (queue capacity %d)",
            self.worker_count,
            self.capacity,
        )

    async def stop(self) -> None:
        """Cancel workers, including jobs in flight.

        Jobs still waiting in the queue are dropped.
        """
        if not self._running:
            logger.warning("JobWorkerPool is not running")
            return

        logger.info("Stopping JobWorkerPool...")
        self._running = False
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        dropped = 0
        while not self._queue.empty():
            job = self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
            logger.warning("Dropping queued job %s on shutdown", job.job_id)

        logger.info("JobWorkerPool stopped (%d queued jobs dropped)", dropped)

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        logger.debug("Job worker %d started", index)
        while True:
            job = await self._queue.get()
            self._active += 1
            logger.info(
                "Job worker %d: starting job %s after %.1fs in queue",
                index,
                job.job_id,
                job.queued_seconds(),
            )
            try:
                await self._handler(job)
            except Exception as e:
                logger.exception("Job worker %d: job %s raised: %s", index, job.job_id, e)
            finally:
                self._active -= 1
                self._queue.task_done()

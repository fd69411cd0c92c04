"""Job submission and status business logic.

Routers delegate here; the service owns job id allocation, the job store
and handing work to the worker pool.
"""

import logging
import uuid

from audiodrop.dao.job_dao import JobDAO
from audiodrop.enums import FailureReason
from audiodrop.exceptions import JobNotFoundError, QueueFullError
from audiodrop.models.domain import JobRecord, SubmissionRequest
from audiodrop.workers.job_pool import JobWorkerPool, QueuedJob

logger = logging.getLogger(__name__)


class JobService:
    """Accepts submissions and answers status queries."""

    def __init__(self, job_dao: JobDAO, pool: JobWorkerPool) -> None:
        """Initialize JobService.

        Args:
            job_dao: Data access object for job records.
            pool: Worker pool that executes accepted jobs.
        """
        self.job_dao = job_dao
        self.pool = pool

    async def submit(
        self,
        request: SubmissionRequest,
        base_url: str | None = None,
    ) -> JobRecord:
        """Record a new job and queue it for execution.

        Fields are not validated; empty values are forwarded as-is.

        Returns:
            The pending JobRecord.

        Raises:
            QueueFullError: If the worker pool cannot accept more work.
        """
        if self.pool.is_full:
            raise QueueFullError(self.pool.capacity)

        job_id = str(uuid.uuid4())
        record = await self.job_dao.create(
            job_id,
            request.source_url,
            request.recipient_email,
        )

        try:
            self.pool.submit(QueuedJob(job_id=job_id, request=request, base_url=base_url))
        except QueueFullError:
            # Filled up while the record was being written
            await self.job_dao.mark_failed(
                job_id,
                FailureReason.INTERNAL_ERROR,
                "Rejected: job queue full",
            )
            raise

        logger.info("Accepted job %s for %s", job_id, request.recipient_email)
        return record

    async def get_job(self, job_id: str) -> JobRecord:
        """Get a job record.

        Raises:
            JobNotFoundError: If no job has this id.
        """
        record = await self.job_dao.get_by_id(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record

    async def list_recent(self, limit: int = 50) -> list[JobRecord]:
        """Most recently submitted jobs, newest first."""
        return await self.job_dao.list_recent(limit)

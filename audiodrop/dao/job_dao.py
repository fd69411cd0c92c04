"""Job data access operations."""

from sqlalchemy import select, update

from audiodrop.dao.base import BaseDAO
from audiodrop.enums import FailureReason, JobStatus
from audiodrop.models.domain import JobRecord
from audiodrop.models.orm import JobModel

_UNFINISHED = (JobStatus.PENDING.value, JobStatus.RUNNING.value)


class JobDAO(BaseDAO[JobRecord]):
    """Data access object for job status records.

    All methods return Pydantic JobRecord models, never SQLAlchemy objects.
    """

    model = JobModel

    def _to_domain(self, row: JobModel) -> JobRecord:
        return JobRecord(
            id=row.id,
            source_url=row.source_url,
            recipient_email=row.recipient_email,
            status=JobStatus(row.status),
            failure_reason=FailureReason(row.failure_reason) if row.failure_reason else None,
            download_link=row.download_link,
            detail=row.detail,
            created_at=row.created_at,
            updated_at=row.updated_at,
            finished_at=row.finished_at,
        )

    async def create(
        self,
        job_id: str,
        source_url: str,
        recipient_email: str,
    ) -> JobRecord:
        """Create a new pending job record.

        Args:
            job_id: Unique job identifier.
            source_url: URL submitted for extraction.
            recipient_email: Address the link will be sent to.

        Returns:
            Created JobRecord domain model.
        """
        now = self._utcnow()
        async with self._db.session() as session:
            row = JobModel(
                id=job_id,
                source_url=source_url,
                recipient_email=recipient_email,
                status=JobStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            await session.flush()
            return self._to_domain(row)

    async def list_recent(self, limit: int = 50) -> list[JobRecord]:
        """Get the most recently created jobs, newest first."""
        async with self._db.session() as session:
            result = await session.execute(
                select(JobModel).order_by(JobModel.created_at.desc()).limit(limit)
            )
            return [self._to_domain(row) for row in result.scalars().all()]

    async def mark_running(self, job_id: str) -> bool:
        """Move a job to RUNNING.

        Returns:
            True if the job was found and updated, False otherwise.
        """
        return await self._transition(job_id, JobStatus.RUNNING)

    async def mark_succeeded(self, job_id: str, download_link: str) -> bool:
        """Record the delivered download link and finish the job."""
        return await self._transition(
            job_id,
            JobStatus.SUCCEEDED,
            download_link=download_link,
        )

    async def mark_failed(
        self,
        job_id: str,
        reason: FailureReason,
        detail: str | None = None,
    ) -> bool:
        """Finish the job as FAILED with a reason and optional detail text."""
        return await self._transition(
            job_id,
            JobStatus.FAILED,
            failure_reason=reason,
            detail=detail,
        )

    async def fail_unfinished(self, detail: str) -> int:
        """Fail every PENDING or RUNNING job.

        Queued work only lives in worker memory, so anything a previous
        process left unfinished will never complete.

        Returns:
            Number of rows updated.
        """
        now = self._utcnow()
        async with self._db.session() as session:
            result = await session.execute(
                update(JobModel)
                .where(JobModel.status.in_(_UNFINISHED))
                .values(
                    status=JobStatus.FAILED.value,
                    failure_reason=FailureReason.INTERNAL_ERROR.value,
                    detail=detail,
                    updated_at=now,
                    finished_at=now,
                )
            )
            return result.rowcount or 0

    async def _transition(
        self,
        job_id: str,
        status: JobStatus,
        *,
        failure_reason: FailureReason | None = None,
        download_link: str | None = None,
        detail: str | None = None,
    ) -> bool:
        async with self._db.session() as session:
            row = await self._fetch(session, job_id)
            if row is None:
                return False

            now = self._utcnow()
            row.status = status.value
            row.updated_at = now
            if failure_reason is not None:
                row.failure_reason = failure_reason.value
            if download_link is not None:
                row.download_link = download_link
            if detail is not None:
                row.detail = detail
            if status in (JobStatus.SUCCEEDED, JobStatus.FAILED):
                row.finished_at = now
            return True

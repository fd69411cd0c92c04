"""Job status API endpoints.

Routers handle HTTP concerns only - no business logic.
All business logic is delegated to JobService.
"""

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Query

from audiodrop.exceptions import JobNotFoundError
from audiodrop.models.base import JsonModel
from audiodrop.models.domain import JobRecord

if TYPE_CHECKING:
    from audiodrop.services.job_service import JobService


class JobListResponse(JsonModel):
    """Response model for the recent jobs listing."""

    jobs: list[JobRecord]


def create_job_router(job_service: "JobService") -> APIRouter:
    """Create job status router with injected service.

    Args:
        job_service: JobService instance for business logic

    Returns:
        APIRouter with job endpoints configured
    """
    router = APIRouter(prefix="/api/jobs", tags=["jobs"])

    @router.get("", response_model=JobListResponse)
    async def list_jobs(
        limit: int = Query(50, ge=1, le=500, description="Maximum jobs to return"),
    ) -> JobListResponse:
        """List recent jobs, newest first."""
        return JobListResponse(jobs=await job_service.list_recent(limit))

    @router.get("/{job_id}", response_model=JobRecord)
    async def get_job(job_id: str) -> JobRecord:
        """Get the status of one job.

        Raises:
            HTTPException: 404 if the job is unknown
        """
        try:
            return await job_service.get_job(job_id)
        except JobNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    return router

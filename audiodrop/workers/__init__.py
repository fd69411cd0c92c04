"""Background job execution."""

from audiodrop.workers.job_pool import JobWorkerPool, QueuedJob

__all__ = ["JobWorkerPool", "QueuedJob"]

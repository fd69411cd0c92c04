"""Service exception classes.

All audiodrop-specific exceptions inherit from AudiodropError.
"""


class AudiodropError(Exception):
    """Base exception for all audiodrop errors."""


class WorkspaceError(AudiodropError):
    """A job workspace could not be created."""


class ArchiveBuildError(AudiodropError):
    """Packaging extracted files into an archive failed."""


class QueueFullError(AudiodropError):
    """The job queue is at capacity and cannot accept another submission."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"Job queue is full ({capacity} jobs waiting)")


class JobNotFoundError(AudiodropError):
    """No job record exists for the requested id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")

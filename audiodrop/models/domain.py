"""Pydantic domain models.

These models are returned by DAOs and used throughout the service layer.
SQLAlchemy ORM objects should never be exposed outside the DAO layer.
"""

from datetime import UTC, datetime
from pathlib import Path

from pydantic import Field

from audiodrop.enums import ArtifactKind, FailureReason, JobStatus
from audiodrop.models.base import JsonModel


class SubmissionRequest(JsonModel):
    """A single form submission.

    Both fields are forwarded as given; empty strings are accepted.
    """

    source_url: str = ""
    recipient_email: str = ""

    @property
    def local_part(self) -> str:
        """Substring of the recipient address before the first '@'."""
        return self.recipient_email.split("@", 1)[0]


class Job(JsonModel):
    """In-memory view of one end-to-end run of a submission."""

    id: str
    workspace_dir: Path
    request: SubmissionRequest
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ExtractedFile(JsonModel):
    """An audio file the extractor left in a job workspace."""

    path: Path
    logical_name: str

    @classmethod
    def from_path(cls, path: Path) -> "ExtractedFile":
        return cls(path=path, logical_name=path.name)


class Artifact(JsonModel):
    """The downloadable unit referenced by the emailed link.

    `public_name` is the path of the artifact relative to the storage root,
    using forward slashes.
    """

    kind: ArtifactKind
    path: Path
    public_name: str


class JobRecord(JsonModel):
    """Persisted status of a job."""

    id: str
    source_url: str
    recipient_email: str
    status: JobStatus = JobStatus.PENDING
    failure_reason: FailureReason | None = None
    download_link: str | None = None
    detail: str | None = None
    created_at: datetime
    updated_at: datetime
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)

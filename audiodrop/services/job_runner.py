"""End-to-end execution of a single extraction job.

A job creates its own workspace under the storage root, runs the extractor
there, turns the output into a downloadable artifact (the file itself or a
zip archive), emails the link and optionally sweeps expired files.

Outcomes reach the end user only by email; everything else is logged and
recorded in the job store.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote

from audiodrop.enums import ArtifactKind, FailureReason
from audiodrop.exceptions import ArchiveBuildError, WorkspaceError
from audiodrop.models.domain import Artifact, ExtractedFile, Job, SubmissionRequest
from audiodrop.services.archive_builder import archive_name

if TYPE_CHECKING:
    from audiodrop.config import AppConfig
    from audiodrop.dao.job_dao import JobDAO
    from audiodrop.services.archive_builder import ArchiveBuilder
    from audiodrop.services.extractor import ExternalExtractor
    from audiodrop.services.notifier import Notifier
    from audiodrop.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)

# Upper bound on diagnostic text copied into the job record
MAX_DETAIL_CHARS = 4000


def build_download_link(base_url: str, public_name: str) -> str:
    """Link under /download for a path relative to the storage root."""
    return f"{base_url.rstrip('/')}/download/{quote(public_name)}"


class JobRunner:
    """Orchestrates one submission from extraction through notification."""

    def __init__(
        self,
        config: "AppConfig",
        extractor: "ExternalExtractor",
        archive_builder: "ArchiveBuilder",
        notifier: "Notifier",
        sweeper: "RetentionSweeper",
        job_dao: "JobDAO | None" = None,
    ) -> None:
        self.config = config
        self.extractor = extractor
        self.archive_builder = archive_builder
        self.notifier = notifier
        self.sweeper = sweeper
        self.job_dao = job_dao

    @property
    def storage_root(self) -> Path:
        return self.config.storage_path

    def create_workspace(self, job_id: str) -> Path:
        """Create the job's exclusive workspace directory.

        Raises:
            WorkspaceError: If the directory exists already or cannot be made.
        """
        workspace = self.storage_root / job_id
        try:
            self.storage_root.mkdir(parents=True, exist_ok=True)
            workspace.mkdir()
        except OSError as e:
            raise WorkspaceError(f"Cannot create workspace {workspace}: {e}") from e
        return workspace

    async def run(
        self,
        request: SubmissionRequest,
        base_url: str | None = None,
        job_id: str | None = None,
    ) -> None:
        """Run a job to its terminal state.

        Never raises (except for cancellation); failures are logged and
        recorded.

        Args:
            request: The submission to process.
            base_url: Link prefix; defaults to the configured base URL.
            job_id: Pre-allocated id (from the job store); a new uuid4 is
                allocated when omitted.
        """
        job_id = job_id or str(uuid.uuid4())
        base_url = base_url or self.config.base_url

        try:
            await self._run(job_id, request, base_url)
        except Exception as e:
            logger.exception("Job %s failed unexpectedly: %s", job_id, e)
            await self._record_failure(job_id, FailureReason.INTERNAL_ERROR, str(e))
        finally:
            if self.config.sweep_after_job:
                await self._sweep()

    async def _run(self, job_id: str, request: SubmissionRequest, base_url: str) -> None:
        try:
            workspace = self.create_workspace(job_id)
        except WorkspaceError as e:
            logger.error("Job %s: %s", job_id, e)
            await self._record_failure(job_id, FailureReason.WORKSPACE_ERROR, str(e))
            return

        job = Job(id=job_id, workspace_dir=workspace, request=request)
        await self._record_running(job_id)
        logger.info("Job %s started for %s", job.id, request.source_url)

        result = await self.extractor.run(request.source_url, workspace)
        if not result.ok:
            logger.error(
                "Job %s: extractor failed (exit %d), stdout: %s, stderr: %s",
                job.id,
                result.returncode,
                result.stdout,
                result.stderr,
            )
            await self.notifier.send(
                request.recipient_email,
                f"{Path(self.extractor.executable).name} error:\n{result.stderr}",
            )
            reason = (
                FailureReason.EXTRACTION_TIMEOUT
                if result.timed_out
                else FailureReason.EXTRACTION_FAILED
            )
            await self._record_failure(job.id, reason, result.stderr)
            return

        outputs = [ExtractedFile.from_path(p) for p in self.extractor.collect_outputs(workspace)]
        if not outputs:
            logger.warning("Job %s: no %s files found", job.id, self.extractor.audio_format)
            await self._record_failure(
                job.id,
                FailureReason.NO_OUTPUT,
                f"No {self.extractor.audio_format} files produced",
            )
            return

        try:
            artifact = await self._package(job, outputs)
        except ArchiveBuildError as e:
            logger.error("Job %s: error zipping files: %s", job.id, e)
            await self._record_failure(job.id, FailureReason.ARCHIVE_FAILED, str(e))
            return

        link = build_download_link(base_url, artifact.public_name)
        sent = await self.notifier.send(
            request.recipient_email,
            f"Download your files here: {link}",
        )
        if sent:
            logger.info("Job %s: download link emailed to %s", job.id, request.recipient_email)
        else:
            logger.warning("Job %s: download link could not be emailed", job.id)
        await self._record_success(job.id, link)

    async def _package(self, job: Job, outputs: list[ExtractedFile]) -> Artifact:
        """Turn extracted files into the artifact behind the emailed link."""
        if len(outputs) == 1:
            only = outputs[0]
            return Artifact(
                kind=ArtifactKind.FILE,
                path=only.path,
                public_name=f"{job.id}/{only.logical_name}",
            )

        name = archive_name(
            job.request.local_part,
            datetime.now(),
            job.id if self.config.archive_name_includes_job_id else None,
        )
        destination = self.storage_root / name
        await asyncio.to_thread(
            self.archive_builder.build,
            [f.path for f in outputs],
            destination,
        )
        return Artifact(kind=ArtifactKind.ARCHIVE, path=destination, public_name=name)

    async def _sweep(self) -> None:
        try:
            await self.sweeper.sweep_async(
                self.storage_root,
                self.config.retention_period,
            )
        except Exception as e:
            logger.error("Post-job retention sweep failed: %s", e)

    async def _record_running(self, job_id: str) -> None:
        if self.job_dao is None:
            return
        try:
            await self.job_dao.mark_running(job_id)
        except Exception as e:
            logger.warning("Could not record job %s as running: %s", job_id, e)

    async def _record_success(self, job_id: str, link: str) -> None:
        if self.job_dao is None:
            return
        try:
            await self.job_dao.mark_succeeded(job_id, link)
        except Exception as e:
            logger.warning("Could not record job %s as succeeded: %s", job_id, e)

    async def _record_failure(
        self,
        job_id: str,
        reason: FailureReason,
        detail: str | None,
    ) -> None:
        if self.job_dao is None:
            return
        if detail and len(detail) > MAX_DETAIL_CHARS:
            # The tool's final error line is at the end
            detail = detail[-MAX_DETAIL_CHARS:]
        try:
            await self.job_dao.mark_failed(job_id, reason, detail)
        except Exception as e:
            logger.warning("Could not record job %s as failed: %s", job_id, e)

"""Zip packaging of multi-file extraction results."""

import logging
import zipfile
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from audiodrop.exceptions import ArchiveBuildError

logger = logging.getLogger(__name__)

ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def archive_name(
    local_part: str,
    when: datetime,
    job_id: str | None = None,
) -> str:
    """Name of the archive for a recipient.

    `{local_part}_{YYYYMMDDHHMMSS}.zip`, or with `_{job_id}` before the
    extension when a job id is given. Path separators in the local part are
    replaced so the archive always lands directly under the storage root.
    """
    safe_local = local_part.replace("/", "_").replace("\\", "_")
    stem = f"{safe_local}_{when.strftime(ARCHIVE_TIMESTAMP_FORMAT)}"
    if job_id:
        stem = f"{stem}_{job_id}"
    return f"{stem}.zip"


class ArchiveBuilder:
    """Combines files into a single deflate-compressed zip archive.

    Each file is stored under its base name; directory structure is not
    preserved. Building onto an existing destination overwrites it.
    """

    compression = zipfile.ZIP_DEFLATED

    def build(self, files: Iterable[str | Path], destination: str | Path) -> Path:
        """Write `files` into a new archive at `destination`.

        Args:
            files: Ordered file paths to include.
            destination: Archive path to create.

        Returns:
            The destination path.

        Raises:
            ArchiveBuildError: If the destination cannot be created or an
                input cannot be read. A partially written archive is removed.
        """
        destination = Path(destination)
        members = [Path(f) for f in files]

        try:
            archive = zipfile.ZipFile(destination, "w", compression=self.compression)
        except OSError as e:
            raise ArchiveBuildError(f"Cannot create archive {destination}: {e}") from e

        try:
            with archive:
                for member in members:
                    archive.write(member, arcname=member.name)
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise ArchiveBuildError(f"Cannot write archive {destination}: {e}") from e

        logger.info("Built archive %s with %d files", destination, len(members))
        return destination

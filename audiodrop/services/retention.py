"""Age-based deletion of files under the storage root."""

import asyncio
import logging
import os
import stat
import time
from datetime import timedelta
from pathlib import Path

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Deletes regular files whose mtime is strictly older than a cutoff.

    Directories are left in place, possibly empty.
    """

    def sweep(
        self,
        root: str | Path,
        max_age: timedelta,
        *,
        now: float | None = None,
    ) -> int:
        """Walk `root` recursively and delete expired files.

        Args:
            root: Directory tree to sweep.
            max_age: Files with mtime < now - max_age are deleted.
            now: Reference time (epoch seconds); defaults to the current time.

        Returns:
            Count of deleted files.
        """
        root = Path(root)
        if not root.is_dir():
            return 0

        cutoff = (time.time() if now is None else now) - max_age.total_seconds()
        deleted_count = 0

        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                file_path = Path(dirpath) / name
                try:
                    st = file_path.lstat()
                    if not stat.S_ISREG(st.st_mode) or st.st_mtime >= cutoff:
                        continue
                    file_path.unlink()
                    deleted_count += 1
                except FileNotFoundError:
                    # Removed concurrently by a job or another sweep
                    continue
                except OSError as e:
                    logger.warning("Cannot delete expired file %s: %s", file_path, e)

        logger.info(
            "Retention sweep of %s: deleted %d files older than %s",
            root,
            deleted_count,
            max_age,
        )
        return deleted_count

    async def sweep_async(self, root: str | Path, max_age: timedelta) -> int:
        """Run `sweep` in a worker thread."""
        return await asyncio.to_thread(self.sweep, root, max_age)

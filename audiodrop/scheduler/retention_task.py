"""Retention sweep task for scheduled execution.

Deletes files under the storage root that are older than the configured
retention period.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from audiodrop.config import AppConfig
    from audiodrop.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)


async def retention_sweep_task(
    sweeper: "RetentionSweeper",
    config: "AppConfig",
) -> int:
    """Execute one retention sweep of the storage root.

    Args:
        sweeper: RetentionSweeper doing the deletion.
        config: Application configuration with retention settings.

    Returns:
        Number of files deleted.
    """
    logger.info(
        "Starting retention sweep (retention: %d days)",
        config.file_retention_days,
    )

    try:
        deleted_count = await sweeper.sweep_async(
            config.storage_root,
            config.retention_period,
        )
    except Exception as e:
        logger.error("Retention sweep failed: %s", e)
        raise

    logger.info("Retention sweep completed: deleted %d files", deleted_count)
    return deleted_count

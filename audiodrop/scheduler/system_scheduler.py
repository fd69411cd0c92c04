"""System scheduler for periodic housekeeping.

Runs the retention sweep on a fixed interval, independent of how many jobs
are submitted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from audiodrop.scheduler.retention_task import retention_sweep_task

if TYPE_CHECKING:
    from audiodrop.config import AppConfig
    from audiodrop.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)


class SystemScheduler:
    """Scheduler for system-level periodic tasks.

    The first sweep runs immediately on start, then every
    `retention_sweep_interval_seconds`.
    """

    def __init__(
        self,
        config: "AppConfig",
        sweeper: "RetentionSweeper",
    ) -> None:
        """Initialize the system scheduler.

        Args:
            config: Application configuration.
            sweeper: RetentionSweeper for storage cleanup.
        """
        self.config = config
        self.sweeper = sweeper
        self._running = False
        self._sweep_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def interval_seconds(self) -> int:
        return self.config.retention_sweep_interval_seconds

    @property
    def is_running(self) -> bool:
        """True while the sweep loop is active."""
        return self._running

    async def start(self) -> None:
        """Start the retention sweep loop."""
        if self._running:
            logger.warning("SystemScheduler is already running")
            return

        self._running = True
        self._stop_event.clear()
        self._sweep_task = asyncio.create_task(self._run_sweep_loop())

        logger.info(
            "SystemScheduler started, retention sweep every %d seconds",
            self.interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            logger.warning("SystemScheduler is not running")
            return

        logger.info("Stopping SystemScheduler...")
        self._running = False
        self._stop_event.set()

        if self._sweep_task:
            try:
                await asyncio.wait_for(self._sweep_task, timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("SystemScheduler task did not stop gracefully, cancelling")
                self._sweep_task.cancel()
                try:
                    await self._sweep_task
                except asyncio.CancelledError:
                    pass
            except asyncio.CancelledError:
                pass
            finally:
                self._sweep_task = None

        logger.info("SystemScheduler stopped")

    async def _run_sweep_loop(self) -> None:
        logger.info("Retention sweep loop started")

        while self._running:
            await self._execute_sweep()

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.interval_seconds,
                )
                break
            except asyncio.TimeoutError:
                continue

        logger.info("Retention sweep loop ended")

    async def _execute_sweep(self) -> None:
        try:
            await retention_sweep_task(sweeper=self.sweeper, config=self.config)
        except Exception as e:
            logger.exception("Error in retention sweep loop: %s", e)

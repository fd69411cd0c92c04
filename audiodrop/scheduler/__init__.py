"""Scheduler module for periodic background tasks.

Provides the SystemScheduler and the retention sweep task it runs.
"""

from audiodrop.scheduler.retention_task import retention_sweep_task
from audiodrop.scheduler.system_scheduler import SystemScheduler

__all__ = ["SystemScheduler", "retention_sweep_task"]

"""Tests for SystemScheduler and the retention sweep task."""

import asyncio
import os
import time
from unittest.mock import AsyncMock, patch

import pytest

from audiodrop.scheduler.retention_task import retention_sweep_task
from audiodrop.scheduler.system_scheduler import SystemScheduler
from audiodrop.services.retention import RetentionSweeper


class TestRetentionSweepTask:
    """Tests for the retention sweep task function."""

    async def test_task_sweeps_storage_root(self, config):
        sweeper = RetentionSweeper()
        with patch.object(sweeper, "sweep_async", new_callable=AsyncMock) as mock_sweep:
            mock_sweep.return_value = 5

            result = await retention_sweep_task(sweeper, config)

        assert result == 5
        args = mock_sweep.await_args.args
        assert args[0] == config.storage_root
        assert args[1].days == config.file_retention_days

    async def test_task_propagates_errors(self, config):
        sweeper = RetentionSweeper()
        with patch.object(
            sweeper, "sweep_async", new_callable=AsyncMock, side_effect=OSError("denied")
        ):
            with pytest.raises(OSError):
                await retention_sweep_task(sweeper, config)

    async def test_task_deletes_expired_files(self, make_config, storage_root):
        config = make_config(file_retention_days=7)
        now = time.time()
        old = [storage_root / "old1.mp3", storage_root / "job" / "old2.mp3"]
        new = storage_root / "new.mp3"
        for path in (*old, new):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"x")
        for path in old:
            os.utime(path, (now - 8 * 86400, now - 8 * 86400))

        deleted = await retention_sweep_task(RetentionSweeper(), config)

        assert deleted == 2
        assert [p for p in old if p.exists()] == []
        assert new.exists()


class TestSystemScheduler:
    async def test_start_runs_first_sweep_immediately(self, config):
        sweeper = RetentionSweeper()
        scheduler = SystemScheduler(config=config, sweeper=sweeper)

        with patch.object(sweeper, "sweep_async", new_callable=AsyncMock) as mock_sweep:
            mock_sweep.return_value = 0
            await scheduler.start()
            await asyncio.sleep(0.05)
            assert scheduler.is_running
            await scheduler.stop()

        mock_sweep.assert_awaited_once()
        assert not scheduler.is_running

    async def test_sweeps_repeat_on_interval(self, make_config):
        config = make_config(retention_sweep_interval_seconds=0)
        sweeper = RetentionSweeper()
        scheduler = SystemScheduler(config=config, sweeper=sweeper)

        with patch.object(sweeper, "sweep_async", new_callable=AsyncMock) as mock_sweep:
            mock_sweep.return_value = 0
            await scheduler.start()
            await asyncio.sleep(0.05)
            await scheduler.stop()

        assert mock_sweep.await_count >= 2

    async def test_sweep_errors_keep_loop_alive(self, make_config):
        config = make_config(retention_sweep_interval_seconds=0)
        sweeper = RetentionSweeper()
        scheduler = SystemScheduler(config=config, sweeper=sweeper)

        with patch.object(
            sweeper, "sweep_async", new_callable=AsyncMock, side_effect=OSError("denied")
        ) as mock_sweep:
            await scheduler.start()
            await asyncio.sleep(0.05)
            await scheduler.stop()

        assert mock_sweep.await_count >= 2

    async def test_double_start_and_stop_are_harmless(self, config):
        scheduler = SystemScheduler(config=config, sweeper=RetentionSweeper())

        await scheduler.start()
        await scheduler.start()
        await scheduler.stop()
        await scheduler.stop()

        assert not scheduler.is_running

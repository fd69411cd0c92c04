"""Application entry point and bootstrap.

This module initializes all application components, wires dependencies,
and provides the main entry point for running the service.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from audiodrop.config import AppConfig
from audiodrop.dao import JobDAO
from audiodrop.database import Database
from audiodrop.logging_filters import install_uvicorn_access_log_filters
from audiodrop.observability.error_log_file import setup_error_log_file
from audiodrop.routers import (
    create_download_router,
    create_job_router,
    create_submission_router,
)
from audiodrop.scheduler import SystemScheduler
from audiodrop.services import (
    ArchiveBuilder,
    ExternalExtractor,
    JobRunner,
    JobService,
    Notifier,
    RetentionSweeper,
)
from audiodrop.workers import JobWorkerPool, QueuedJob

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

logging.getLogger("aiosqlite").setLevel(logging.WARNING)
logging.getLogger("aiosmtplib").setLevel(logging.WARNING)


class Application:
    """Main application container.

    Manages all application components and their lifecycle.
    """

    def __init__(self, config: AppConfig) -> None:
        """Initialize the application with configuration.

        Args:
            config: Application configuration.
        """
        self.config = config

        self.database: Database | None = None
        self.fastapi_app: FastAPI | None = None

        self.job_dao: JobDAO | None = None

        self.extractor: ExternalExtractor | None = None
        self.archive_builder: ArchiveBuilder | None = None
        self.notifier: Notifier | None = None
        self.sweeper: RetentionSweeper | None = None
        self.job_runner: JobRunner | None = None
        self.job_service: JobService | None = None

        self.worker_pool: JobWorkerPool | None = None
        self.system_scheduler: SystemScheduler | None = None

    async def setup(self) -> None:
        """Initialize all application components with dependency injection."""
        logger.info("Setting up application components...")

        setup_error_log_file(self.config)

        self.config.storage_path.mkdir(parents=True, exist_ok=True)
        logger.info("Storage root: %s", self.config.storage_root)

        self.database = Database(self.config.database_url)
        if self.config.auto_create_tables:
            await self.database.init_db()
            logger.info("Database initialized (auto_create_tables=true)")
        else:
            logger.info(
                "Database initialized (auto_create_tables=false; relying on Alembic migrations)"
            )

        self.job_dao = JobDAO(self.database)
        stale = await self.job_dao.fail_unfinished("Interrupted by service restart")
        if stale:
            logger.warning("Marked %d unfinished jobs from a previous run as failed", stale)

        self.extractor = ExternalExtractor.from_config(self.config)
        self.archive_builder = ArchiveBuilder()
        self.notifier = Notifier(self.config)
        self.sweeper = RetentionSweeper()
        self.job_runner = JobRunner(
            config=self.config,
            extractor=self.extractor,
            archive_builder=self.archive_builder,
            notifier=self.notifier,
            sweeper=self.sweeper,
            job_dao=self.job_dao,
        )
        self.worker_pool = JobWorkerPool(
            self._run_queued_job,
            worker_count=self.config.worker_count,
            max_queued=self.config.max_queued_jobs,
        )
        self.job_service = JobService(self.job_dao, self.worker_pool)
        self.system_scheduler = SystemScheduler(config=self.config, sweeper=self.sweeper)
        logger.info("Services initialized")

        logger.info("Application setup complete")

    async def _run_queued_job(self, job: QueuedJob) -> None:
        await self.job_runner.run(job.request, base_url=job.base_url, job_id=job.job_id)

    def register_routes(self, fastapi_app: FastAPI) -> None:
        """Attach routers and the static mount to a FastAPI app.

        Requires setup() to have run.
        """
        if self.job_service is None:
            raise RuntimeError("Application not set up")

        fastapi_app.include_router(
            create_submission_router(self.job_service, base_url=self.config.base_url)
        )
        fastapi_app.include_router(create_download_router(self.config.storage_root))
        fastapi_app.include_router(create_job_router(self.job_service))
        fastapi_app.mount(
            "/public",
            StaticFiles(directory=self.config.storage_root, check_dir=False),
            name="public",
        )

        @fastapi_app.get("/health")
        async def health_check():
            """Health check endpoint."""
            pool = self.worker_pool
            return {
                "status": "healthy",
                "workers": pool.worker_count if pool else 0,
                "activeJobs": pool.active_count if pool else 0,
                "queuedJobs": pool.queue_depth if pool else 0,
            }

        logger.info("Routes registered")

    def create_fastapi_app(self) -> FastAPI:
        """Create and configure the FastAPI application.

        Returns:
            Configured FastAPI application.
        """

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            logger.info("FastAPI application starting...")
            yield
            logger.info("FastAPI application shutting down...")

        self.fastapi_app = FastAPI(
            title="audiodrop",
            description="Extract audio from media URLs and email a download link",
            version="1.0.0",
            lifespan=lifespan,
        )
        self.register_routes(self.fastapi_app)
        return self.fastapi_app

    async def start_background_services(self) -> None:
        """Start the job workers and the retention scheduler."""
        logger.info("Starting background services...")

        if self.worker_pool:
            await self.worker_pool.start()
            logger.info("Job worker pool started")

        if self.system_scheduler:
            await self.system_scheduler.start()
            logger.info("System scheduler started")

    async def shutdown(self) -> None:
        """Gracefully shutdown all application components."""
        logger.info("Initiating graceful shutdown...")

        if self.system_scheduler and self.system_scheduler.is_running:
            await self.system_scheduler.stop()
            logger.info("System scheduler stopped")

        if self.worker_pool and self.worker_pool.is_running:
            await self.worker_pool.stop()
            logger.info("Job worker pool stopped")

        if self.database:
            await self.database.close()
            self.database = None
            logger.info("Database connection closed")

        logger.info("Graceful shutdown complete")


# Global application instance
_app: Application | None = None


def get_application() -> Application:
    """Get the global application instance.

    Raises:
        RuntimeError: If application not initialized.
    """
    if _app is None:
        raise RuntimeError("Application not initialized")
    return _app


async def create_app(config: AppConfig | None = None) -> Application:
    """Create and setup the application.

    Args:
        config: Optional configuration. If not provided, loads from
                config.json with environment variable overrides.

    Returns:
        Initialized Application instance.
    """
    global _app

    if config is None:
        config = AppConfig.from_json_file()

    _app = Application(config)
    await _app.setup()
    _app.create_fastapi_app()

    return _app


async def main(reload: bool = False) -> None:
    """Run the service until it is stopped.

    Args:
        reload: Enable hot reload during development.
    """
    import uvicorn

    logger.info("Starting audiodrop...")

    try:
        config = AppConfig.from_json_file()
        logger.info("Configuration loaded")

        app = await create_app(config)
        await app.start_background_services()

        logger.info(
            "Application running. Form available at http://%s:%d/",
            config.api_host,
            config.api_port,
        )

        uvicorn_config = uvicorn.Config(
            app.fastapi_app,
            host=config.api_host,
            port=config.api_port,
            log_level="info",
            reload=reload,
        )
        uvicorn_config.load()
        install_uvicorn_access_log_filters()

        server = uvicorn.Server(uvicorn_config)
        await server.serve()

    except SystemExit:
        # uvicorn exits this way when it cannot bind the port
        logger.critical("Server failed to start")
        raise
    except Exception as e:
        logger.exception("Application error: %s", e)
        raise
    finally:
        if _app:
            await _app.shutdown()


def run() -> None:
    """Console entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Run the audiodrop service")
    parser.add_argument("--reload", action="store_true", help="Enable hot reload")
    args = parser.parse_args()

    try:
        asyncio.run(main(reload=args.reload))
    except KeyboardInterrupt:
        pass
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    run()

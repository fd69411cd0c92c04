"""ASGI entry point for uvicorn with hot reload support.

Usage:
    uvicorn audiodrop.asgi:app --reload --host 0.0.0.0 --port 8080
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from audiodrop.config import AppConfig
from audiodrop.logging_filters import install_uvicorn_access_log_filters
from audiodrop.main import Application

# Global application instance for lifespan management
_application: Application | None = None


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan for ASGI server."""
    global _application

    config = AppConfig.from_json_file()
    install_uvicorn_access_log_filters()
    _application = Application(config)
    await _application.setup()
    _application.register_routes(fastapi_app)

    await _application.start_background_services()

    yield

    await _application.shutdown()
    _application = None


app = FastAPI(
    title="audiodrop",
    description="Extract audio from media URLs and email a download link",
    version="1.0.0",
    lifespan=lifespan,
)

"""Artifact download endpoint."""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

logger = logging.getLogger(__name__)


def resolve_download_path(storage_root: str | Path, relative: str) -> Path | None:
    """Map a request path onto a file under the storage root.

    The result is canonicalised; anything resolving outside the root, or
    not a regular file, yields None.
    """
    root = Path(storage_root).resolve()
    candidate = (root / relative.lstrip("/")).resolve()
    if not candidate.is_relative_to(root):
        logger.warning("Rejected download outside storage root: %s", relative)
        return None
    if not candidate.is_file():
        return None
    return candidate


def create_download_router(storage_root: str | Path) -> APIRouter:
    """Create the download router serving files from `storage_root`."""
    router = APIRouter(tags=["download"])

    @router.get("/download/{file_path:path}")
    async def download(file_path: str) -> FileResponse:
        """Stream a job artifact.

        Raises:
            HTTPException: 404 if the file does not exist
        """
        path = resolve_download_path(storage_root, file_path)
        if path is None:
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(path, filename=path.name)

    return router

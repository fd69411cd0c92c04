"""End-to-end tests of the assembled application.

The HTTP layer, worker pool, job store and archive code are real; only the
extractor (a shell script) and SMTP delivery are stubbed.
"""

import io
import re
import zipfile
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio

from audiodrop.enums import JobStatus
from audiodrop.main import Application
from audiodrop.routers.submission_router import ACKNOWLEDGEMENT

WRITES_ONE = 'out=$(dirname "$5")\nprintf song-bytes > "$out/song.mp3"'
WRITES_TWO = 'out=$(dirname "$5")\nprintf aaa > "$out/a.mp3"\nprintf bbb > "$out/b.mp3"'


@pytest.fixture
def smtp_send():
    with patch("audiodrop.services.notifier.aiosmtplib.send", new_callable=AsyncMock) as send:
        yield send


@pytest_asyncio.fixture
async def make_app(make_config, write_script, tmp_path):
    apps = []

    async def _make(script_body: str, **overrides) -> Application:
        script = write_script(script_body, name="yt-dlp")
        config = make_config(
            extractor_executable=str(script),
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}",
            retention_sweep_interval_seconds=3600,
            **overrides,
        )
        application = Application(config)
        await application.setup()
        application.create_fastapi_app()
        await application.start_background_services()
        apps.append(application)
        return application

    yield _make

    for application in apps:
        await application.shutdown()


def _client(application: Application) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=application.fastapi_app)
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


def _emailed_path(smtp_send) -> str:
    smtp_send.assert_awaited_once()
    message = smtp_send.await_args.args[0]
    body = message.get_content().strip()
    match = re.search(r"http://example\.test(/download/\S+)$", body)
    assert match, body
    return match.group(1)


async def test_single_file_link_serves_the_file(make_app, smtp_send):
    application = await make_app(WRITES_ONE)

    async with _client(application) as client:
        response = await client.post(
            "/", data={"youtube_url": "https://example.com/v1", "email": "alice@example.com"}
        )
        assert response.status_code == 200
        assert response.text == ACKNOWLEDGEMENT
        job_id = response.headers["x-job-id"]

        await application.worker_pool.join()

        path = _emailed_path(smtp_send)
        assert path == f"/download/{job_id}/song.mp3"
        download = await client.get(path)
        assert download.status_code == 200
        assert download.content == b"song-bytes"

        status = await client.get(f"/api/jobs/{job_id}")
        assert status.json()["status"] == JobStatus.SUCCEEDED.value

        legacy = await client.get(f"/public/{job_id}/song.mp3")
        assert legacy.content == b"song-bytes"


async def test_multiple_files_are_zipped(make_app, smtp_send):
    application = await make_app(WRITES_TWO, archive_name_includes_job_id=False)

    async with _client(application) as client:
        await client.post("/", data={"youtube_url": "u", "email": "alice@example.com"})
        await application.worker_pool.join()

        path = _emailed_path(smtp_send)
        assert re.fullmatch(r"/download/alice_\d{14}\.zip", path)
        download = await client.get(path)

    with zipfile.ZipFile(io.BytesIO(download.content)) as zf:
        assert sorted(zf.namelist()) == ["a.mp3", "b.mp3"]


async def test_health(make_app):
    application = await make_app(WRITES_ONE)

    async with _client(application) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_unfinished_jobs_fail_on_restart(make_app):
    first = await make_app(WRITES_ONE)
    await first.job_dao.create("stale", "u", "e")
    await first.shutdown()

    second = await make_app(WRITES_ONE)

    record = await second.job_dao.get_by_id("stale")
    assert record.status == JobStatus.FAILED

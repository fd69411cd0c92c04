"""Pytest configuration and fixtures."""

import os
import stat
from pathlib import Path

import pytest
import pytest_asyncio

from audiodrop.config import AppConfig
from audiodrop.database import Database

# Configure pytest-asyncio to auto-detect async tests
pytest_plugins = ("pytest_asyncio",)

_ENV_VARS = ("EMAIL_USER", "EMAIL_PASSWORD", "FILE_RETENTION_DAYS")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer env vars out of config-dependent tests."""
    for name in list(os.environ):
        if name.startswith("AUDIODROP_") or name in _ENV_VARS:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "public"
    root.mkdir()
    return root


@pytest.fixture
def make_config(storage_root: Path):
    """Build an AppConfig rooted in a temp storage directory."""

    def _make(**overrides) -> AppConfig:
        values = {
            "storage_root": str(storage_root),
            "base_url": "http://example.test",
            "email_user": "sender@example.test",
            "email_password": "secret",
            "error_log_file_enabled": False,
        }
        values.update(overrides)
        return AppConfig(**values)

    return _make


@pytest.fixture
def config(make_config) -> AppConfig:
    return make_config()


@pytest_asyncio.fixture
async def test_db():
    """Create a fresh in-memory database for each test."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init_db()
    yield db
    await db.close()


@pytest.fixture
def write_script(tmp_path: Path):
    """Write an executable shell script standing in for the extractor.

    The script receives the extractor argv; "$5" is the output template
    path and "$6" the source URL.
    """

    def _write(body: str, name: str = "fake-extractor") -> Path:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _write

"""Tests for AppConfig loading, defaults and env overrides."""

import json
from datetime import timedelta
from pathlib import Path

import pytest

from audiodrop.config import DEFAULT_FILE_RETENTION_DAYS, AppConfig, _flatten_secrets_mapping


class TestDefaults:
    def test_defaults(self, tmp_path):
        config = AppConfig(storage_root=str(tmp_path))

        assert config.extractor_executable == "yt-dlp"
        assert config.audio_format == "mp3"
        assert config.file_retention_days == 7
        assert config.retention_period == timedelta(days=7)
        assert config.smtp_host == "smtp.gmail.com"
        assert config.smtp_port == 587
        assert config.email_user is None
        assert config.sweep_after_job is True

    def test_relative_storage_root_is_made_absolute(self):
        config = AppConfig(storage_root="./public")

        assert Path(config.storage_root).is_absolute()
        assert config.storage_path.name == "public"


class TestEnvOverrides:
    def test_unprefixed_mail_credentials(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EMAIL_USER", "bot@example.test")
        monkeypatch.setenv("EMAIL_PASSWORD", "hunter2")

        config = AppConfig(storage_root=str(tmp_path))

        assert config.email_user == "bot@example.test"
        assert config.email_password == "hunter2"

    def test_prefixed_setting(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUDIODROP_BASE_URL", "https://dl.example.test")

        config = AppConfig(storage_root=str(tmp_path))

        assert config.base_url == "https://dl.example.test"

    def test_retention_days_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FILE_RETENTION_DAYS", "3")

        config = AppConfig(storage_root=str(tmp_path))

        assert config.file_retention_days == 3

    @pytest.mark.parametrize("raw", ["abc", "7d", "0", "-2", ""])
    def test_invalid_retention_falls_back_to_default(self, monkeypatch, tmp_path, raw):
        monkeypatch.setenv("FILE_RETENTION_DAYS", raw)

        config = AppConfig(storage_root=str(tmp_path))

        assert config.file_retention_days == DEFAULT_FILE_RETENTION_DAYS


class TestFromJsonFile:
    def test_json_and_secrets_are_merged(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps({"storage_root": str(tmp_path), "worker_count": 2})
        )
        secrets_path = tmp_path / "secrets.yml"
        secrets_path.write_text("email:\n  user: a@example.test\n  password: pw\n")

        config = AppConfig.from_json_file(str(config_path), str(secrets_path))

        assert config.worker_count == 2
        assert config.email_user == "a@example.test"
        assert config.email_password == "pw"

    def test_env_beats_file_values(self, monkeypatch, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps({"storage_root": str(tmp_path), "file_retention_days": 30})
        )
        monkeypatch.setenv("FILE_RETENTION_DAYS", "2")

        config = AppConfig.from_json_file(str(config_path), str(tmp_path / "missing.yml"))

        assert config.file_retention_days == 2

    def test_missing_files_use_defaults(self, tmp_path):
        config = AppConfig.from_json_file(
            str(tmp_path / "nope.json"), str(tmp_path / "nope.yml")
        )

        assert config.audio_format == "mp3"


def test_flatten_secrets_mapping():
    flat = _flatten_secrets_mapping({"smtp": {"host": "mail.test", "port": 25}, "x": 1})

    assert flat == {"smtp_host": "mail.test", "smtp_port": 25, "x": 1}

"""Configuration with JSON file, secrets.yml, and env variable support."""

import json
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FILE_RETENTION_DAYS = 7

ENV_PREFIX = "AUDIODROP_"

# Settings that are also read from their historical, unprefixed env names.
_UNPREFIXED_ENV_ALIASES = {
    "email_user": "EMAIL_USER",
    "email_password": "EMAIL_PASSWORD",
    "file_retention_days": "FILE_RETENTION_DAYS",
}


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    Relative paths in the config are resolved against the repo root so the
    service can be launched from any working directory.

    - first directory containing `pyproject.toml`
    - otherwise fall back to the current working directory
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except OSError:
        pass

    return Path.cwd()


def _flatten_secrets_mapping(secrets: dict) -> dict:
    """Flatten secrets mapping into AppConfig-compatible keys.

    Converts nested YAML structure to flat config keys:
        email.user -> email_user
        smtp.host -> smtp_host
    """
    flat = {}
    for section, values in secrets.items():
        if isinstance(values, dict):
            for key, value in values.items():
                flat[f"{section}_{key}"] = value
        else:
            flat[section] = values
    return flat


def _load_secrets(secrets_path: Path) -> dict:
    """Load and flatten secrets from YAML file."""
    if not secrets_path.exists():
        return {}

    with open(secrets_path) as f:
        secrets = yaml.safe_load(f) or {}

    if not isinstance(secrets, dict):
        return {}

    return _flatten_secrets_mapping(secrets)


def _env_names_for(key: str) -> list[str]:
    names = [f"{ENV_PREFIX}{key.upper()}"]
    if key in _UNPREFIXED_ENV_ALIASES:
        names.append(_UNPREFIXED_ENV_ALIASES[key])
    return names


class AppConfig(BaseSettings):
    """Configuration with JSON file + secrets.yml + env var support.

    Load order (later overrides earlier):
    1. config.json - base configuration
    2. config.yml - optional non-secret overlay at the repo root
    3. secrets.yml - SMTP credentials
    4. Environment variables - runtime overrides

    Prefix: AUDIODROP_ (e.g., AUDIODROP_BASE_URL). The mail credentials and
    the retention period are also read from EMAIL_USER, EMAIL_PASSWORD and
    FILE_RETENTION_DAYS.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage / links
    storage_root: str = Field(
        default="./public",
        description=(
            "Directory holding per-job workspaces and archives. "
            "It is also the public download namespace."
        ),
    )
    base_url: str = Field(
        default="http://localhost:8080",
        description="Externally reachable URL prefix used in emailed links.",
    )

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    # Database settings (job status store)
    database_url: str = Field(default="sqlite+aiosqlite:///./audiodrop.db")
    auto_create_tables: bool = Field(
        default=True,
        description=(
            "If true, create the jobs table on startup. "
            "Set to false when the schema is managed with Alembic migrations."
        ),
    )

    # Extractor settings
    extractor_executable: str = Field(default="yt-dlp")
    extractor_timeout_seconds: int = Field(default=600)
    audio_format: str = Field(default="mp3")
    output_template: str = Field(
        default="%(title).100B.%(ext)s",
        description="Extractor output template, relative to the job workspace.",
    )

    # Mail transport
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_start_tls: bool = Field(default=True)
    smtp_timeout_seconds: int = Field(default=30)
    email_user: str | None = Field(
        default=None,
        validation_alias=AliasChoices("email_user", "EMAIL_USER", "AUDIODROP_EMAIL_USER"),
    )
    email_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "email_password", "EMAIL_PASSWORD", "AUDIODROP_EMAIL_PASSWORD"
        ),
    )
    email_subject: str = Field(default="Your download")

    # Retention
    file_retention_days: int = Field(
        default=DEFAULT_FILE_RETENTION_DAYS,
        validation_alias=AliasChoices(
            "file_retention_days", "FILE_RETENTION_DAYS", "AUDIODROP_FILE_RETENTION_DAYS"
        ),
    )
    retention_sweep_interval_seconds: int = Field(default=3600)
    sweep_after_job: bool = Field(
        default=True,
        description="Also run the retention sweep at the end of every job.",
    )

    # Job execution
    worker_count: int = Field(default=4)
    max_queued_jobs: int = Field(default=100)
    archive_name_includes_job_id: bool = Field(
        default=True,
        description=(
            "Append the job id to archive names so concurrent jobs for the same "
            "address never share a destination."
        ),
    )

    # Error log file
    error_log_file_enabled: bool = Field(default=True)
    error_log_file_path: str = Field(default="./logs/errors.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    @field_validator("file_retention_days", mode="before")
    @classmethod
    def _fallback_retention_days(cls, value: Any) -> int:
        """Invalid or non-positive day counts fall back to the default."""
        if value is None:
            return DEFAULT_FILE_RETENTION_DAYS
        try:
            days = int(str(value).strip())
        except ValueError:
            return DEFAULT_FILE_RETENTION_DAYS
        if days <= 0:
            return DEFAULT_FILE_RETENTION_DAYS
        return days

    def model_post_init(self, __context) -> None:  # type: ignore[override]
        """Resolve a relative storage root against the repository root."""
        root = Path(self.storage_root).expanduser()
        if not root.is_absolute():
            root = _find_repo_root(start=Path(__file__)) / root
        self.storage_root = str(root.resolve())

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_root)

    @property
    def retention_period(self) -> timedelta:
        return timedelta(days=self.file_retention_days)

    @classmethod
    def from_json_file(
        cls,
        config_path: str = "config.json",
        secrets_path: str = "secrets.yml",
    ) -> "AppConfig":
        """Load config from JSON + secrets.yml with env var overrides.

        Args:
            config_path: Path to JSON config file.
            secrets_path: Path to secrets YAML file.

        Returns:
            Configured AppConfig instance.
        """
        config_data = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path) as f:
                config_data = json.load(f)

        # Precedence: config.json < config.yml < secrets.yml < env
        repo_root = _find_repo_root(start=Path(__file__))
        cfg_yml = repo_root / "config.yml"
        if cfg_yml.is_file():
            with cfg_yml.open("r", encoding="utf-8") as f:
                yml_data = yaml.safe_load(f) or {}
            if isinstance(yml_data, dict):
                config_data.update(yml_data)

        config_data.update(_load_secrets(Path(secrets_path)))

        # Init kwargs beat env vars in pydantic-settings, so drop file values
        # that an env var is meant to override.
        for key in list(config_data):
            if any(name in os.environ for name in _env_names_for(key)):
                del config_data[key]

        return cls(**config_data)

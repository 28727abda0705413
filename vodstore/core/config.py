from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

VIDEO_EXTENSIONS: tuple[str, ...] = (
    ".mp4",
    ".avi",
    ".mov",
    ".wmv",
    ".flv",
    ".webm",
    ".mkv",
    ".3gp",
    ".3g2",
    ".ts",
    ".mpg",
    ".mpeg",
    ".ogv",
    ".m4v",
    ".asf",
)


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="VODSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the vodstore API."""

    model_config = SettingsConfigDict(
        env_prefix="VODSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "vodstore API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./vodstore.db",
        description="SQLAlchemy compatible DSN.",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for background jobs.",
    )
    job_queue_backend: Literal["immediate", "inline", "rq"] = Field(
        default="immediate",
        description="Backend for manifest refresh jobs (inline executes in-process; rq schedules via Redis).",
    )

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    upload_tmp_dir: Path = Field(
        default_factory=lambda: Path("/tmp/video-uploads"),
        description="Spool directory for uploads before remote placement.",
    )
    max_upload_size_bytes: int = Field(default=2 * 1024 * 1024 * 1024, description="Hard limit for uploads.")
    accepted_extensions: tuple[str, ...] = Field(default=VIDEO_EXTENSIONS)

    remote_backend: Literal["local"] = Field(default="local", description="Active remote placement implementation.")
    remote_base_path: Path = Field(
        default_factory=lambda: Path("remote"),
        description="Local directory holding one mounted filesystem per streaming server.",
    )
    streaming_root: str = Field(default="/home/streaming", description="Canonical storage root on streaming hosts.")
    legacy_content_root: str = Field(
        default="/usr/local/WowzaStreamingEngine/content",
        description="Alternate root, only used for read-only existence checks.",
    )
    default_server_id: int = Field(default=1)

    probe_binary: str = Field(default="ffprobe")
    probe_timeout_s: float = Field(default=30.0, gt=0)
    transfer_timeout_s: float = Field(default=600.0, gt=0)

    default_bitrate_kbps: int = Field(default=2500, ge=0, description="Bitrate ceiling when the account has none.")
    default_viewer_limit: int = Field(default=100, ge=0)

    manifest_filename: str = Field(default="{login}.smil", description="Per-account manifest name in the account root.")

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def normalized_job_backend(self) -> str:
        if self.job_queue_backend == "inline":
            return "immediate"
        return self.job_queue_backend


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "VODSTORE_ENV": "VODSTORE_ENVIRONMENT",
        "VODSTORE_DB_URL": "VODSTORE_DATABASE_URL",
        "VODSTORE_JOB_BACKEND": "VODSTORE_JOB_QUEUE_BACKEND",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings", "VIDEO_EXTENSIONS"]

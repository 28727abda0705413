from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from vodstore.db.models import Destination
from vodstore.media.compatibility import STATUS_COLORS, STATUS_MESSAGES
from vodstore.services.catalog import CatalogEntry, format_duration
from vodstore.services.ingest_service import IngestResult


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EnvCheckResponse(BaseModel):
    ffprobe: bool


class DestinationCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, pattern=r"^[A-Za-z0-9._-]+$", examples=["live-shows"])
    capacity_mb: int = Field(..., ge=0, examples=[1000])
    server_id: Optional[int] = Field(default=None, ge=1)


class DestinationResponse(BaseModel):
    id: int
    name: str
    server_id: int
    capacity_mb: int
    used_mb: int
    available_mb: int
    percentage: int

    @classmethod
    def from_destination(cls, destination: Destination) -> "DestinationResponse":
        return cls(
            id=destination.id,
            name=destination.name,
            server_id=destination.server_id,
            capacity_mb=destination.capacity_mb,
            used_mb=destination.used_mb,
            available_mb=destination.available_mb,
            percentage=destination.usage_percentage,
        )


class UploadResponse(BaseModel):
    id: int
    name: str
    url: str = Field(description="Path relative to the streaming root.")
    path: str = Field(description="Absolute path on the streaming host.")
    bitrate_video: int
    codec_video: str
    format_original: str
    width: int
    height: int
    is_mp4: bool
    needs_conversion: bool
    compatibility_status: str
    compatibility_message: str
    compatibility_color: str
    duration: int
    duration_display: str
    size: int
    space_used_mb: int

    @classmethod
    def from_result(cls, result: IngestResult) -> "UploadResponse":
        video = result.video
        status = result.verdict.upload_status
        return cls(
            id=video.id,
            name=video.name,
            url=video.relative_path,
            path=video.remote_path,
            bitrate_video=video.bitrate_kbps,
            codec_video=video.codec,
            format_original=result.extension.lstrip("."),
            width=video.width,
            height=video.height,
            is_mp4=result.verdict.is_mp4,
            needs_conversion=result.verdict.upload_needs_conversion,
            compatibility_status=status.value,
            compatibility_message=STATUS_MESSAGES[status],
            compatibility_color=STATUS_COLORS[status],
            duration=video.duration_s,
            duration_display=format_duration(video.duration_s),
            size=video.size_bytes or 0,
            space_used_mb=result.space_mb,
        )


class VideoListItem(BaseModel):
    id: int
    name: str
    url: str
    duration: int
    duration_display: str
    size: Optional[int]
    bitrate_video: int
    format_original: str
    codec_video: str
    is_mp4: bool
    compatible: bool
    width: int
    height: int
    folder: str
    user: str
    user_bitrate_limit: int
    bitrate_exceeds_limit: bool
    needs_conversion: bool
    codec_compatible: bool
    format_compatible: bool
    compatibility_status: str
    compatibility_message: str
    compatibility_color: str

    @classmethod
    def from_entry(cls, entry: CatalogEntry, *, folder: str, user: str) -> "VideoListItem":
        video = entry.video
        verdict = entry.verdict
        status = verdict.status
        return cls(
            id=video.id,
            name=video.name,
            url=entry.url,
            duration=video.duration_s,
            duration_display=format_duration(video.duration_s),
            size=video.size_bytes,
            bitrate_video=video.bitrate_kbps,
            format_original=video.format_name,
            codec_video=video.codec,
            is_mp4=verdict.is_mp4,
            compatible=video.compatible,
            width=video.width,
            height=video.height,
            folder=folder,
            user=user,
            user_bitrate_limit=verdict.bitrate_ceiling_kbps,
            bitrate_exceeds_limit=verdict.bitrate_exceeds_limit,
            needs_conversion=verdict.needs_conversion,
            codec_compatible=verdict.codec_compatible,
            format_compatible=verdict.format_compatible,
            compatibility_status=status.value,
            compatibility_message=STATUS_MESSAGES[status],
            compatibility_color=STATUS_COLORS[status],
        )


class VideoListResponse(BaseModel):
    destination_id: int
    folder: str
    user: str
    user_bitrate_limit: int
    videos: list[VideoListItem]


class RemovalResponse(BaseModel):
    success: bool = True
    message: str = "Video removed"
    remote_deleted: bool
    released_mb: int


class FileCheckResponse(BaseModel):
    success: bool
    exists: bool
    path: str
    url: str
    size: Optional[int] = None


__all__ = [
    "HealthResponse",
    "EnvCheckResponse",
    "DestinationCreateRequest",
    "DestinationResponse",
    "UploadResponse",
    "VideoListItem",
    "VideoListResponse",
    "RemovalResponse",
    "FileCheckResponse",
]

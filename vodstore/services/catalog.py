from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Sequence

from vodstore.core.auth import AccountContext
from vodstore.core.config import Settings
from vodstore.core.errors import NotFoundError, ValidationError
from vodstore.core.remote import RemotePlacement, RemoteStat
from vodstore.db.models import Destination, Video
from vodstore.media.compatibility import CompatibilityVerdict, classify
from vodstore.media.paths import PathBuilder, playback_url
from vodstore.media.probe import MediaProbeResult
from vodstore.services.repository import MetadataRepository


@dataclass(frozen=True)
class CatalogEntry:
    video: Video
    url: str
    verdict: CompatibilityVerdict


@dataclass(frozen=True)
class LegacyFileCheck:
    remote_path: str
    url: str
    stat: RemoteStat


def format_duration(seconds: int) -> str:
    seconds = max(int(seconds or 0), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def reclassify(video: Video, bitrate_ceiling_kbps: int) -> CompatibilityVerdict:
    """Derive the verdict from the stored technical fields, ignoring stored flags."""
    probe = MediaProbeResult(
        duration_s=video.duration_s,
        format_name=video.format_name,
        codec=video.codec,
        bitrate_kbps=video.bitrate_kbps or 0,
        width=video.width,
        height=video.height,
    )
    return classify(probe, PurePosixPath(video.name).suffix.lower(), bitrate_ceiling_kbps)


async def list_destination_videos(
    repository: MetadataRepository,
    settings: Settings,
    account: AccountContext,
    destination_id: Optional[int],
) -> tuple[Destination, Sequence[CatalogEntry]]:
    if destination_id is None:
        raise ValidationError("destination_id is required", code="destination_required")
    destination = await repository.get_destination(destination_id, account.account_id)
    if destination is None:
        raise NotFoundError("destination not found", code="destination_not_found")

    layout = PathBuilder(root=settings.streaming_root, login=account.login, destination=destination.name)
    roots = (settings.legacy_content_root, settings.streaming_root)
    entries = []
    for video in await repository.list_videos(destination.id, account.account_id):
        url = playback_url(video.relative_path or video.remote_path, roots=roots)
        if not url:
            url = layout.with_filename(video.name).relative
        entries.append(CatalogEntry(video=video, url=url, verdict=reclassify(video, account.bitrate_ceiling_kbps)))
    return destination, entries


async def check_legacy_file(
    repository: MetadataRepository,
    remote: RemotePlacement,
    settings: Settings,
    account: AccountContext,
    destination_name: str,
    filename: str,
) -> LegacyFileCheck:
    """Read-only existence check under the legacy content root."""
    try:
        layout = PathBuilder(
            root=settings.streaming_root,
            login=account.login,
            destination=destination_name,
            filename=filename,
        ).rooted_at(settings.legacy_content_root)
    except ValueError as exc:
        raise ValidationError(str(exc), code="invalid_path") from exc

    destination = await repository.get_destination_by_name(destination_name, account.account_id)
    server_id = destination.server_id if destination else settings.default_server_id
    stat = await asyncio.to_thread(remote.stat, server_id, layout.remote)
    return LegacyFileCheck(remote_path=layout.remote, url=f"/content/{layout.relative}", stat=stat)


__all__ = [
    "CatalogEntry",
    "LegacyFileCheck",
    "check_legacy_file",
    "format_duration",
    "list_destination_videos",
    "reclassify",
]

from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from vodstore.core.auth import AccountContext
from vodstore.core.config import Settings
from vodstore.core.jobs import BaseJobBackend, get_job_backend
from vodstore.core.logging import get_logger
from vodstore.core.remote import RemotePlacement
from vodstore.db.models import Video
from vodstore.media.paths import account_file, strip_root
from vodstore.services.repository import MetadataRepository


class ManifestRefresher(ABC):
    @abstractmethod
    async def refresh(self, account: AccountContext, server_id: int) -> None: ...


class QueuedManifestRefresher(ManifestRefresher):
    """Hands manifest regeneration to the configured job backend."""

    def __init__(self, backend: Optional[BaseJobBackend] = None):
        self._backend = backend
        self.logger = get_logger(component="manifest_refresher")

    @property
    def backend(self) -> BaseJobBackend:
        return self._backend or get_job_backend()

    async def refresh(self, account: AccountContext, server_id: int) -> None:
        self.logger.info("manifest_refresh_queued", account_id=account.account_id, server_id=server_id)
        await self.backend.enqueue_manifest_refresh(account.account_id, account.login, server_id)


def render_smil(login: str, videos: Iterable[Video], *, streaming_root: str) -> str:
    smil = ET.Element("smil", {"title": login})
    head = ET.SubElement(smil, "head")
    ET.SubElement(head, "meta", {"name": "account", "content": login})
    body = ET.SubElement(smil, "body")
    playlist = ET.SubElement(body, "seq", {"id": f"{login}-catalog"})
    for video in videos:
        source = strip_root(video.remote_path or video.relative_path, streaming_root)
        ET.SubElement(
            playlist,
            "video",
            {
                "src": f"mp4:{source}",
                "system-bitrate": str(max(video.bitrate_kbps, 0) * 1000),
                "width": str(video.width),
                "height": str(video.height),
            },
        )
    ET.indent(smil)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(smil, encoding="unicode") + "\n"


async def write_manifest(
    repository: MetadataRepository,
    remote: RemotePlacement,
    settings: Settings,
    *,
    account_id: str,
    login: str,
    server_id: int,
) -> str:
    """Regenerate the account's manifest on ``server_id`` and return its remote path."""
    videos = await repository.list_account_videos(account_id, server_id=server_id)
    payload = render_smil(login, videos, streaming_root=settings.streaming_root)
    target = account_file(settings.streaming_root, login, settings.manifest_filename.format(login=login))
    await asyncio.to_thread(remote.write_text, server_id, target, payload)
    return target


__all__ = ["ManifestRefresher", "QueuedManifestRefresher", "render_smil", "write_manifest"]

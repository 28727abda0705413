from __future__ import annotations

import asyncio
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from vodstore.core.auth import AccountContext
from vodstore.core.config import Settings
from vodstore.core.errors import ForbiddenError, NotFoundError, PersistenceError, RemoteDeleteError
from vodstore.core.logging import get_logger
from vodstore.core.remote import RemotePlacement
from vodstore.media.paths import canonical_remote_path, path_belongs_to
from vodstore.services.manifest import ManifestRefresher
from vodstore.services.quota import QuotaLedger
from vodstore.services.repository import MetadataRepository


@dataclass(frozen=True, slots=True)
class RemovalResult:
    video_id: int
    remote_path: str
    remote_deleted: bool
    released_mb: int


class RemovalOrchestrator:
    """Delete a video record, its remote file and its share of the destination quota.

    An unreachable streaming host never blocks the removal: the remote delete
    is attempted, logged on failure, and the record goes away regardless.
    """

    def __init__(
        self,
        settings: Settings,
        repository: MetadataRepository,
        ledger: QuotaLedger,
        remote: RemotePlacement,
        manifest: ManifestRefresher,
    ):
        self.settings = settings
        self.repository = repository
        self.ledger = ledger
        self.remote = remote
        self.manifest = manifest
        self.logger = get_logger(component="removal_service")

    async def remove(self, account: AccountContext, video_id: int) -> RemovalResult:
        logger = self.logger.bind(account_id=account.account_id, video_id=video_id)

        video = await self.repository.get_video(video_id, account.account_id)
        if video is None:
            raise NotFoundError("video not found", code="video_not_found")
        if not path_belongs_to(video.remote_path, account.login):
            logger.warning("removal_forbidden", remote_path=video.remote_path)
            raise ForbiddenError("access denied", code="access_denied")

        destination = video.destination
        server_id = destination.server_id
        remote_path = canonical_remote_path(video.remote_path, self.settings.streaming_root)

        size_bytes = video.size_bytes or 0
        if not size_bytes:
            size_bytes = await self._stat_size(server_id, remote_path, logger)

        remote_deleted = True
        try:
            await self._delete_remote(server_id, remote_path)
            logger.info("remote_file_deleted", remote_path=remote_path)
        except RemoteDeleteError as exc:
            remote_deleted = False
            logger.warning("remote_delete_failed", remote_path=remote_path, error=exc.message)

        try:
            await self.repository.delete_video(video)
            released_mb = await self.ledger.release(destination.id, size_bytes, commit=False)
            await self.repository.commit()
        except SQLAlchemyError as exc:
            await self.repository.rollback()
            raise PersistenceError(f"could not delete video record: {exc}") from exc
        logger.info("video_removed", released_mb=released_mb, remote_deleted=remote_deleted)

        try:
            await self.manifest.refresh(account, server_id)
        except Exception as exc:
            logger.warning("manifest_refresh_failed", server_id=server_id, error=str(exc))

        return RemovalResult(
            video_id=video_id,
            remote_path=remote_path,
            remote_deleted=remote_deleted,
            released_mb=released_mb,
        )

    async def _delete_remote(self, server_id: int, remote_path: str) -> None:
        try:
            await asyncio.to_thread(self.remote.delete, server_id, remote_path)
        except (OSError, ValueError) as exc:
            raise RemoteDeleteError(f"could not delete {remote_path}: {exc}") from exc

    async def _stat_size(self, server_id: int, remote_path: str, logger) -> int:
        try:
            stat = await asyncio.to_thread(self.remote.stat, server_id, remote_path)
        except Exception as exc:
            logger.warning("remote_stat_failed", remote_path=remote_path, error=str(exc))
            return 0
        return stat.size_bytes if stat.exists else 0


__all__ = ["RemovalOrchestrator", "RemovalResult"]

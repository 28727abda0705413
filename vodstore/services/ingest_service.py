from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from vodstore.core.auth import AccountContext
from vodstore.core.config import Settings
from vodstore.core.errors import NotFoundError, ProbeError, TransferError, ValidationError
from vodstore.core.logging import get_logger
from vodstore.core.remote import RemotePlacement
from vodstore.db.models import Destination, Video
from vodstore.media.compatibility import CompatibilityVerdict, classify
from vodstore.media.paths import PathBuilder
from vodstore.media.probe import MediaProbeResult, ProbeAdapter
from vodstore.services.manifest import ManifestRefresher
from vodstore.services.quota import QuotaLedger
from vodstore.services.repository import MetadataRepository
from vodstore.services.uploads import UploadedAsset

Compensation = Callable[[], Awaitable[None]]


class IngestStage(str, enum.Enum):
    received = "received"
    validated = "validated"
    probed = "probed"
    classified = "classified"
    quota_reserved = "quota_reserved"
    placed = "placed"
    persisted = "persisted"
    manifest_queued = "manifest_queued"
    done = "done"


class CompensationStack:
    """Undo actions for the stages reached so far, unwound newest first."""

    def __init__(self, logger) -> None:
        self._actions: list[tuple[str, Compensation]] = []
        self.logger = logger

    def push(self, label: str, action: Compensation) -> None:
        self._actions.append((label, action))

    def discard(self, label: str) -> None:
        self._actions = [(name, action) for name, action in self._actions if name != label]

    @property
    def labels(self) -> list[str]:
        return [name for name, _ in self._actions]

    async def unwind(self) -> None:
        while self._actions:
            label, action = self._actions.pop()
            try:
                await action()
                self.logger.info("compensation_applied", action=label)
            except Exception as exc:
                self.logger.error("compensation_failed", action=label, error=str(exc))


@dataclass
class PipelineState:
    account: AccountContext
    asset: UploadedAsset
    compensations: CompensationStack
    stage: IngestStage = IngestStage.received
    failed_stage: Optional[IngestStage] = None
    failure: Optional[BaseException] = None
    probe: MediaProbeResult = field(default_factory=MediaProbeResult)
    space_mb: int = 0


@dataclass(frozen=True)
class IngestResult:
    video: Video
    destination: Destination
    probe: MediaProbeResult
    verdict: CompatibilityVerdict
    extension: str
    space_mb: int


class IngestionOrchestrator:
    """Validate, probe, classify, reserve, place, persist and announce one upload.

    Any failure unwinds the compensations registered by the stages already
    reached. The manifest refresh runs after the record is committed and its
    failure is only logged.
    """

    def __init__(
        self,
        settings: Settings,
        repository: MetadataRepository,
        ledger: QuotaLedger,
        probe: ProbeAdapter,
        remote: RemotePlacement,
        manifest: ManifestRefresher,
    ):
        self.settings = settings
        self.repository = repository
        self.ledger = ledger
        self.probe = probe
        self.remote = remote
        self.manifest = manifest
        self.logger = get_logger(component="ingest_service")

    async def ingest(self, account: AccountContext, destination_id: int, asset: UploadedAsset) -> IngestResult:
        logger = self.logger.bind(account_id=account.account_id, destination_id=destination_id, file=asset.original_name)
        state = PipelineState(account=account, asset=asset, compensations=CompensationStack(logger))
        state.compensations.push("delete_temp_asset", lambda: self._delete_temp_asset(asset))

        try:
            result = await self._run(state, destination_id, logger)
        except (Exception, asyncio.CancelledError) as exc:
            state.failed_stage = state.stage
            state.failure = exc
            logger.warning(
                "ingest_failed",
                stage=state.stage.value,
                cause=type(exc).__name__,
                error=str(exc),
                compensations=state.compensations.labels,
            )
            await state.compensations.unwind()
            raise
        return result

    async def _run(self, state: PipelineState, destination_id: int, logger) -> IngestResult:
        asset = state.asset
        self._validate(asset)
        self._advance(state, IngestStage.validated, logger)

        state.probe = await self._probe(asset, logger)
        self._advance(state, IngestStage.probed, logger)

        verdict = classify(state.probe, asset.extension, state.account.bitrate_ceiling_kbps)
        self._advance(state, IngestStage.classified, logger, status=verdict.upload_status.value)

        destination = await self.repository.get_destination(destination_id, state.account.account_id)
        if destination is None:
            raise NotFoundError("destination not found", code="destination_not_found")
        state.space_mb = await self.ledger.reserve(destination, asset.size_bytes)
        state.compensations.push(
            "release_quota",
            lambda: self._release_quota(destination_id, asset.size_bytes),
        )
        self._advance(state, IngestStage.quota_reserved, logger, space_mb=state.space_mb)

        paths = PathBuilder(
            root=self.settings.streaming_root,
            login=state.account.login,
            destination=destination.name,
            filename=asset.generated_name,
        )
        await self._place(state, paths, destination.server_id)
        self._advance(state, IngestStage.placed, logger, remote_path=paths.remote)

        await self._delete_temp_asset(asset)
        state.compensations.discard("delete_temp_asset")

        video = await self.repository.insert_video(**self._record_fields(state, paths, destination, verdict))
        state.compensations.discard("delete_remote_file")
        state.compensations.discard("release_quota")
        self._advance(state, IngestStage.persisted, logger, video_id=video.id)

        await self._refresh_manifest(state.account, destination.server_id, logger)
        self._advance(state, IngestStage.manifest_queued, logger)

        self._advance(state, IngestStage.done, logger)
        return IngestResult(
            video=video,
            destination=destination,
            probe=state.probe,
            verdict=verdict,
            extension=asset.extension,
            space_mb=state.space_mb,
        )

    @staticmethod
    def _advance(state: PipelineState, stage: IngestStage, logger, **extra) -> None:
        state.stage = stage
        logger.info("ingest_stage", stage=stage.value, **extra)

    def _validate(self, asset: UploadedAsset) -> None:
        accepted = tuple(ext.lower() for ext in self.settings.accepted_extensions)
        if asset.extension not in accepted:
            raise ValidationError(
                f"unsupported file format: {asset.extension or '(none)'}; accepted: {', '.join(accepted)}",
                code="unsupported_extension",
            )
        if asset.size_bytes > self.settings.max_upload_size_bytes:
            raise ValidationError(
                f"file exceeds the {self.settings.max_upload_size_bytes} byte limit",
                code="upload_too_large",
            )

    async def _probe(self, asset: UploadedAsset, logger) -> MediaProbeResult:
        try:
            return await asyncio.to_thread(self.probe.probe, asset.local_path)
        except ProbeError as exc:
            logger.warning("probe_failed", code=exc.code, error=exc.message)
            return MediaProbeResult.unknown(asset.extension.lstrip("."))

    async def _place(self, state: PipelineState, paths: PathBuilder, server_id: int) -> None:
        remote_path = paths.remote
        transfer: Optional[asyncio.Future] = None

        async def remove_remote_file() -> None:
            # The worker thread cannot be interrupted; wait for it so the delete lands after the write.
            if transfer is not None:
                await asyncio.wait([transfer])
                if not transfer.cancelled():
                    transfer.exception()
            await asyncio.to_thread(self._delete_remote_if_present, server_id, remote_path)

        state.compensations.push("delete_remote_file", remove_remote_file)
        try:
            await asyncio.to_thread(self.remote.ensure_account_structure, server_id, paths.account_root)
            await asyncio.to_thread(self.remote.ensure_directory, server_id, paths.destination_dir)
            transfer = asyncio.ensure_future(
                asyncio.to_thread(self.remote.put, server_id, state.asset.local_path, remote_path)
            )
            await asyncio.wait_for(asyncio.shield(transfer), timeout=self.settings.transfer_timeout_s)
        except asyncio.TimeoutError as exc:
            raise TransferError(f"transfer timed out after {self.settings.transfer_timeout_s}s") from exc
        except (OSError, ValueError) as exc:
            raise TransferError(f"transfer to {remote_path} failed: {exc}") from exc

    def _delete_remote_if_present(self, server_id: int, remote_path: str) -> None:
        try:
            self.remote.delete(server_id, remote_path)
        except FileNotFoundError:
            pass

    def _record_fields(
        self,
        state: PipelineState,
        paths: PathBuilder,
        destination: Destination,
        verdict: CompatibilityVerdict,
    ) -> dict:
        probe = state.probe
        return {
            "name": state.asset.original_name,
            "relative_path": paths.relative,
            "remote_path": paths.remote,
            "duration_s": probe.duration_s,
            "size_bytes": state.asset.size_bytes,
            "owner_account_id": state.account.account_id,
            "destination_id": destination.id,
            "bitrate_kbps": probe.bitrate_kbps,
            "format_name": probe.format_name,
            "codec": probe.codec,
            "width": probe.width,
            "height": probe.height,
            "is_mp4": verdict.is_mp4,
            "compatible": not verdict.upload_needs_conversion,
        }

    async def _release_quota(self, destination_id: int, size_bytes: int) -> None:
        await self.ledger.release(destination_id, size_bytes)

    async def _refresh_manifest(self, account: AccountContext, server_id: int, logger) -> None:
        try:
            await self.manifest.refresh(account, server_id)
        except Exception as exc:
            logger.warning("manifest_refresh_failed", server_id=server_id, error=str(exc))

    @staticmethod
    async def _delete_temp_asset(asset: UploadedAsset) -> None:
        await asyncio.to_thread(asset.local_path.unlink, missing_ok=True)


__all__ = [
    "CompensationStack",
    "IngestResult",
    "IngestStage",
    "IngestionOrchestrator",
    "PipelineState",
]

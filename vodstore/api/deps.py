from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vodstore.core.auth import AccountContext, get_account_context
from vodstore.core.config import Settings, get_settings
from vodstore.core.errors import VodstoreError
from vodstore.core.remote import RemotePlacement
from vodstore.media.probe import ProbeAdapter
from vodstore.services.ingest_service import IngestionOrchestrator
from vodstore.services.manifest import ManifestRefresher
from vodstore.services.quota import QuotaLedger
from vodstore.services.removal_service import RemovalOrchestrator
from vodstore.services.repository import MetadataRepository


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - defensive
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_app_settings() -> Settings:
    return get_settings()


def get_remote(request: Request) -> RemotePlacement:
    remote: RemotePlacement = request.app.state.remote
    return remote


def get_probe_adapter(request: Request) -> ProbeAdapter:
    probe: ProbeAdapter = request.app.state.probe
    return probe


def get_manifest_refresher(request: Request) -> ManifestRefresher:
    manifest: ManifestRefresher = request.app.state.manifest
    return manifest


def get_repository(session: AsyncSession = Depends(get_session)) -> MetadataRepository:
    return MetadataRepository(session)


def get_ingestion_orchestrator(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
    probe: ProbeAdapter = Depends(get_probe_adapter),
    remote: RemotePlacement = Depends(get_remote),
    manifest: ManifestRefresher = Depends(get_manifest_refresher),
) -> IngestionOrchestrator:
    return IngestionOrchestrator(
        settings,
        MetadataRepository(session),
        QuotaLedger(session),
        probe,
        remote,
        manifest,
    )


def get_removal_orchestrator(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
    remote: RemotePlacement = Depends(get_remote),
    manifest: ManifestRefresher = Depends(get_manifest_refresher),
) -> RemovalOrchestrator:
    return RemovalOrchestrator(settings, MetadataRepository(session), QuotaLedger(session), remote, manifest)


def to_http_exception(exc: VodstoreError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


AccountDependency = Annotated[AccountContext, Depends(get_account_context)]
RepositoryDependency = Annotated[MetadataRepository, Depends(get_repository)]
IngestionDependency = Annotated[IngestionOrchestrator, Depends(get_ingestion_orchestrator)]
RemovalDependency = Annotated[RemovalOrchestrator, Depends(get_removal_orchestrator)]


__all__ = [
    "get_session",
    "get_app_settings",
    "get_remote",
    "get_probe_adapter",
    "get_manifest_refresher",
    "get_repository",
    "get_ingestion_orchestrator",
    "get_removal_orchestrator",
    "to_http_exception",
    "AccountDependency",
    "RepositoryDependency",
    "IngestionDependency",
    "RemovalDependency",
]

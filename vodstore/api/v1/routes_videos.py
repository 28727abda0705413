from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from vodstore.api import deps
from vodstore.core.config import Settings
from vodstore.core.errors import ValidationError, VodstoreError
from vodstore.core.logging import get_logger
from vodstore.core.remote import RemotePlacement
from vodstore.services.catalog import check_legacy_file, list_destination_videos
from vodstore.services.uploads import spool_upload

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])
logger = get_logger(component="routes_videos")


def _require_destination(destination_id: Optional[int]) -> int:
    if destination_id is None:
        raise deps.to_http_exception(ValidationError("destination_id is required", code="destination_required"))
    return destination_id


@router.post("/upload", response_model=schemas.UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    orchestrator: deps.IngestionDependency,
    context: deps.AccountDependency,
    video: UploadFile = File(...),
    destination_id: Optional[int] = Query(default=None),
    settings: Settings = Depends(deps.get_app_settings),
) -> schemas.UploadResponse:
    target = _require_destination(destination_id)
    try:
        asset = await spool_upload(video, settings)
        result = await orchestrator.ingest(context, target, asset)
    except VodstoreError as exc:
        raise deps.to_http_exception(exc) from exc
    except Exception as exc:
        logger.exception("upload_failed", account_id=context.account_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "upload_failed", "message": str(exc)},
        ) from exc
    return schemas.UploadResponse.from_result(result)


@router.get("", response_model=schemas.VideoListResponse)
async def list_videos(
    repository: deps.RepositoryDependency,
    context: deps.AccountDependency,
    destination_id: Optional[int] = Query(default=None),
    settings: Settings = Depends(deps.get_app_settings),
) -> schemas.VideoListResponse:
    try:
        destination, entries = await list_destination_videos(repository, settings, context, destination_id)
    except VodstoreError as exc:
        raise deps.to_http_exception(exc) from exc

    logger.info("videos_listed", destination_id=destination.id, count=len(entries))
    return schemas.VideoListResponse(
        destination_id=destination.id,
        folder=destination.name,
        user=context.login,
        user_bitrate_limit=context.bitrate_ceiling_kbps,
        videos=[
            schemas.VideoListItem.from_entry(entry, folder=destination.name, user=context.login)
            for entry in entries
        ],
    )


@router.delete("/{video_id}", response_model=schemas.RemovalResponse)
async def remove_video(
    video_id: int,
    orchestrator: deps.RemovalDependency,
    context: deps.AccountDependency,
) -> schemas.RemovalResponse:
    try:
        result = await orchestrator.remove(context, video_id)
    except VodstoreError as exc:
        raise deps.to_http_exception(exc) from exc
    return schemas.RemovalResponse(remote_deleted=result.remote_deleted, released_mb=result.released_mb)


@router.get("/check/{destination_name}/{filename}", response_model=schemas.FileCheckResponse)
async def check_file(
    destination_name: str,
    filename: str,
    repository: deps.RepositoryDependency,
    context: deps.AccountDependency,
    remote: RemotePlacement = Depends(deps.get_remote),
    settings: Settings = Depends(deps.get_app_settings),
) -> schemas.FileCheckResponse:
    try:
        check = await check_legacy_file(repository, remote, settings, context, destination_name, filename)
    except VodstoreError as exc:
        raise deps.to_http_exception(exc) from exc
    except OSError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "remote_check_failed", "message": str(exc)},
        ) from exc
    return schemas.FileCheckResponse(
        success=check.stat.exists,
        exists=check.stat.exists,
        path=check.remote_path,
        url=check.url,
        size=check.stat.size_bytes if check.stat.exists else None,
    )


__all__ = ["router"]

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from vodstore.api import deps
from vodstore.core.config import Settings
from vodstore.core.errors import VodstoreError

from . import schemas


router = APIRouter(prefix="/destinations", tags=["destinations"])


@router.post("", response_model=schemas.DestinationResponse, status_code=status.HTTP_201_CREATED)
async def create_destination(
    payload: schemas.DestinationCreateRequest,
    repository: deps.RepositoryDependency,
    context: deps.AccountDependency,
    settings: Settings = Depends(deps.get_app_settings),
) -> schemas.DestinationResponse:
    if await repository.get_destination_by_name(payload.name, context.account_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="destination_exists")
    try:
        destination = await repository.create_destination(
            account_id=context.account_id,
            name=payload.name,
            server_id=payload.server_id or settings.default_server_id,
            capacity_mb=payload.capacity_mb,
        )
    except VodstoreError as exc:
        raise deps.to_http_exception(exc) from exc
    return schemas.DestinationResponse.from_destination(destination)


@router.get("", response_model=list[schemas.DestinationResponse])
async def list_destinations(
    repository: deps.RepositoryDependency,
    context: deps.AccountDependency,
) -> list[schemas.DestinationResponse]:
    destinations = await repository.list_destinations(context.account_id)
    return [schemas.DestinationResponse.from_destination(item) for item in destinations]


__all__ = ["router"]

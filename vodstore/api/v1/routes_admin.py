from __future__ import annotations

import subprocess
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from vodstore.api.deps import AccountDependency
from vodstore.core.config import Settings, get_settings

from .schemas import EnvCheckResponse


router = APIRouter(prefix="/admin", tags=["admin"])


class DevTokenRequest(BaseModel):
    account_id: str = Field(..., examples=["42"])
    login: str | None = Field(default=None, examples=["radio-demo"])
    email: str | None = Field(default=None, examples=["radio-demo@example.com"])
    bitrate: int | None = Field(default=None, ge=1, examples=[2500])
    viewers: int | None = Field(default=None, ge=1, examples=[100])
    scopes: list[str] = Field(default_factory=list)


class DevTokenResponse(BaseModel):
    token: str


def _probe_binary(command: list[str]) -> bool:
    try:
        subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True, timeout=10)
        return True
    except (OSError, subprocess.SubprocessError):
        return False


@router.get("/env-check", response_model=EnvCheckResponse, summary="Validate the media inspection toolchain")
async def env_check(context: AccountDependency, settings: Settings = Depends(get_settings)) -> EnvCheckResponse:
    if "admin" not in context.scopes:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_scope_required")
    return EnvCheckResponse(ffprobe=_probe_binary([settings.probe_binary, "-version"]))


@router.post("/dev-token", response_model=DevTokenResponse, summary="Mint development JWT")
async def mint_dev_token(payload: DevTokenRequest, settings: Settings = Depends(get_settings)) -> DevTokenResponse:
    if settings.environment_lower not in {"development", "dev"}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="dev_token_disabled")

    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(hours=1)
    claims: dict[str, object] = {
        "sub": payload.account_id,
        "scopes": payload.scopes,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    for key in ("login", "email", "bitrate", "viewers"):
        value = getattr(payload, key)
        if value is not None:
            claims[key] = value
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience

    token = jwt.encode(claims, settings.secrets.jwt_secret, algorithm=settings.jwt_algorithm)
    return DevTokenResponse(token=token)


__all__ = ["router"]

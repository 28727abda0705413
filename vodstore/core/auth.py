from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings


security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AccountContext:
    """Authenticated account, resolved once per request from the bearer token."""

    account_id: str
    login: str
    bitrate_ceiling_kbps: int
    viewer_limit: int = 100
    scopes: tuple[str, ...] = ()


def _decode_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(
            token,
            settings.secrets.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.PyJWTError as exc:  # pragma: no cover - library handles message
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from exc
    return payload


def _positive_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def resolve_login(payload: dict[str, Any], account_id: str) -> str:
    login: Optional[str] = payload.get("login") or payload.get("username")
    if login:
        return str(login)
    email = payload.get("email")
    if email and "@" in str(email):
        return str(email).split("@", 1)[0]
    return f"user_{account_id}"


def account_from_claims(payload: dict[str, Any], settings: Settings) -> AccountContext:
    account_id = payload.get("sub") or payload.get("account_id")
    if account_id in (None, ""):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="account_scope_required")
    account_id = str(account_id)

    return AccountContext(
        account_id=account_id,
        login=resolve_login(payload, account_id),
        bitrate_ceiling_kbps=_positive_int(payload.get("bitrate"), settings.default_bitrate_kbps),
        viewer_limit=_positive_int(payload.get("viewers"), settings.default_viewer_limit),
        scopes=tuple(payload.get("scopes") or []),
    )


async def get_account_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> AccountContext:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_authorization")

    payload = _decode_token(credentials.credentials, settings)
    context = account_from_claims(payload, settings)
    request.state.account = context
    return context


__all__ = ["AccountContext", "account_from_claims", "get_account_context", "resolve_login"]

"""Error taxonomy shared by the ingestion and removal pipelines."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional


class VodstoreError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ValidationError(VodstoreError):
    status_code = 400
    code = "validation_error"


class NotFoundError(VodstoreError):
    status_code = 404
    code = "not_found"


class ForbiddenError(VodstoreError):
    status_code = 403
    code = "forbidden"


@dataclass(frozen=True, slots=True)
class SpaceInfo:
    required: int
    available: int
    total: int
    used: int
    percentage: int


class QuotaExceededError(VodstoreError):
    status_code = 400
    code = "quota_exceeded"

    def __init__(self, space_info: SpaceInfo) -> None:
        super().__init__(
            f"Insufficient space. Required: {space_info.required}MB, Available: {space_info.available}MB"
        )
        self.space_info = space_info

    @property
    def hint(self) -> str:
        info = self.space_info
        missing = info.required - info.available
        return (
            f"Your plan allows {info.total}MB of storage and {info.used}MB is in use. "
            f"Free another {missing}MB to upload this file."
        )

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["details"] = self.hint
        detail["space_info"] = asdict(self.space_info)
        return detail


class ProbeError(VodstoreError):
    """Media inspection failed; callers continue with unknown metadata."""

    code = "probe_failed"


class TransferError(VodstoreError):
    code = "transfer_failed"


class PersistenceError(VodstoreError):
    code = "persistence_failed"


class RemoteDeleteError(VodstoreError):
    code = "remote_delete_failed"


__all__ = [
    "VodstoreError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "SpaceInfo",
    "QuotaExceededError",
    "ProbeError",
    "TransferError",
    "PersistenceError",
    "RemoteDeleteError",
]

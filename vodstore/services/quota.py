from __future__ import annotations

import math

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vodstore.core.errors import NotFoundError, QuotaExceededError, SpaceInfo
from vodstore.core.logging import get_logger
from vodstore.db.models import Destination

BYTES_PER_MB = 1024 * 1024


def space_mb(size_bytes: int) -> int:
    return math.ceil(max(size_bytes, 0) / BYTES_PER_MB)


class QuotaLedger:
    """Only writer of ``Destination.used_mb``.

    Both operations are a single conditional UPDATE, so concurrent requests
    against one destination are serialised by the database instead of a
    read-then-write in application code.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = get_logger(component="quota_ledger")

    async def reserve(self, destination: Destination, size_bytes: int) -> int:
        required = space_mb(size_bytes)
        destination_id = destination.id
        stmt = (
            update(Destination)
            .where(
                Destination.id == destination_id,
                Destination.used_mb + required <= Destination.capacity_mb,
            )
            .values(used_mb=Destination.used_mb + required)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            await self.session.rollback()
            raise QuotaExceededError(await self._space_info(destination_id, required))

        await self.session.commit()
        await self.session.refresh(destination)
        self.logger.info(
            "quota_reserved",
            destination_id=destination_id,
            space_mb=required,
            used_mb=destination.used_mb,
            capacity_mb=destination.capacity_mb,
        )
        return required

    async def release(self, destination_id: int, size_bytes: int, *, commit: bool = True) -> int:
        released = space_mb(size_bytes)
        stmt = (
            update(Destination)
            .where(Destination.id == destination_id)
            .values(
                used_mb=case(
                    (Destination.used_mb > released, Destination.used_mb - released),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        if commit:
            await self.session.commit()
        self.logger.info("quota_released", destination_id=destination_id, space_mb=released)
        return released

    async def _space_info(self, destination_id: int, required: int) -> SpaceInfo:
        stmt = select(Destination.capacity_mb, Destination.used_mb).where(Destination.id == destination_id)
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            raise NotFoundError("destination not found", code="destination_not_found")
        capacity, used = row
        percentage = round(used / capacity * 100) if capacity > 0 else 100
        return SpaceInfo(
            required=required,
            available=capacity - used,
            total=capacity,
            used=used,
            percentage=percentage,
        )


__all__ = ["BYTES_PER_MB", "QuotaLedger", "space_mb"]

from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vodstore.core.errors import PersistenceError
from vodstore.db.models import Destination, Video


class MetadataRepository:
    """Persistence for destinations and video records, always scoped to an account."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_destination(self, destination_id: int, account_id: str) -> Optional[Destination]:
        stmt = select(Destination).where(
            Destination.id == destination_id,
            Destination.owner_account_id == account_id,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def get_destination_by_name(self, name: str, account_id: str) -> Optional[Destination]:
        stmt = select(Destination).where(
            Destination.name == name,
            Destination.owner_account_id == account_id,
        )
        return (await self.session.execute(stmt)).scalars().first()

    async def list_destinations(self, account_id: str) -> Sequence[Destination]:
        stmt = select(Destination).where(Destination.owner_account_id == account_id).order_by(Destination.id)
        return (await self.session.execute(stmt)).scalars().all()

    async def create_destination(
        self,
        *,
        account_id: str,
        name: str,
        server_id: int,
        capacity_mb: int,
    ) -> Destination:
        destination = Destination(
            owner_account_id=account_id,
            name=name,
            server_id=server_id,
            capacity_mb=capacity_mb,
            used_mb=0,
        )
        self.session.add(destination)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceError(f"could not create destination: {exc}") from exc
        await self.session.refresh(destination)
        return destination

    async def get_video(self, video_id: int, account_id: str) -> Optional[Video]:
        owned_destinations = select(Destination.id).where(Destination.owner_account_id == account_id)
        stmt = (
            select(Video)
            .options(selectinload(Video.destination))
            .where(
                Video.id == video_id,
                or_(Video.owner_account_id == account_id, Video.destination_id.in_(owned_destinations)),
            )
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_videos(self, destination_id: int, account_id: str) -> Sequence[Video]:
        stmt = (
            select(Video)
            .where(Video.owner_account_id == account_id, Video.destination_id == destination_id)
            .order_by(Video.id.desc())
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def list_account_videos(self, account_id: str, *, server_id: Optional[int] = None) -> Sequence[Video]:
        stmt = (
            select(Video)
            .join(Destination, Video.destination_id == Destination.id)
            .options(selectinload(Video.destination))
            .where(Video.owner_account_id == account_id)
            .order_by(Destination.name, Video.id)
        )
        if server_id is not None:
            stmt = stmt.where(Destination.server_id == server_id)
        return (await self.session.execute(stmt)).scalars().all()

    async def insert_video(self, **fields: Any) -> Video:
        video = Video(**fields)
        self.session.add(video)
        try:
            await self.session.commit()
            await self.session.refresh(video)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceError(f"could not persist video record: {exc}") from exc
        return video

    async def delete_video(self, video: Video) -> None:
        """Stage the deletion; the caller commits."""
        await self.session.delete(video)
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


__all__ = ["MetadataRepository"]

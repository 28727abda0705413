from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vodstore.core.db import Base


class Destination(Base):
    __tablename__ = "destinations"
    __table_args__ = (
        CheckConstraint("used_mb >= 0", name="ck_destinations_used_non_negative"),
        CheckConstraint("used_mb <= capacity_mb", name="ck_destinations_used_within_capacity"),
        Index("ix_destinations_owner_account_id", "owner_account_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    server_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    capacity_mb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    used_mb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    videos: Mapped[List["Video"]] = relationship(back_populates="destination")

    @property
    def available_mb(self) -> int:
        return max(self.capacity_mb - self.used_mb, 0)

    @property
    def usage_percentage(self) -> int:
        if self.capacity_mb <= 0:
            return 100
        return round(self.used_mb / self.capacity_mb * 100)


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (Index("ix_videos_owner_destination", "owner_account_id", "destination_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    relative_path: Mapped[str] = mapped_column(String(2048), nullable=False)
    remote_path: Mapped[str] = mapped_column(String(2048), nullable=False)
    duration_s: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    owner_account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    destination_id: Mapped[int] = mapped_column(ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False)
    bitrate_kbps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    format_name: Mapped[str] = mapped_column(String(128), nullable=False, default="unknown")
    codec: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    width: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    height: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_mp4: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    compatible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    destination: Mapped[Destination] = relationship(back_populates="videos")


__all__ = ["Destination", "Video"]

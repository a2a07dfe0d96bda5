"""Persistence model for inserted event metadata rows."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import Boolean, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine

from eventproc.common.time import utcnow


class Base(DeclarativeBase):
    """Base declarative class for event metadata models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that keeps UTC tzinfo on backends that drop it."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Store aware datetimes as UTC; naive values are assumed to be UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Return UTC-aware datetimes."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class EventMetaData(Base):
    """One persisted event metadata entry."""

    __tablename__ = "event_meta_data"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    julian_day: Mapped[int] = mapped_column(Integer)
    ready: Mapped[bool] = mapped_column(Boolean)
    reprocess: Mapped[bool] = mapped_column(Boolean)
    interval_in_seconds: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


async def init_event_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

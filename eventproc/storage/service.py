"""Repository-style access to persisted event metadata."""

from __future__ import annotations

import typing as typ

from eventproc.storage.models import EventMetaData

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from eventproc.metadata import EventMetadataValues


class EventMetadataStore(typ.Protocol):
    """Anything able to insert typed event metadata and return its id."""

    async def insert_event_metadata(self, values: EventMetadataValues) -> int:
        """Insert one row and return the identifier the backend assigned."""
        ...


class SqlEventMetadataStore:
    """Insert event metadata rows through an async SQLAlchemy session factory.

    Each insert runs in its own session and transaction so concurrent
    dispatches never share a session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for inserts."""
        self._session_factory = session_factory

    async def insert_event_metadata(self, values: EventMetadataValues) -> int:
        """Insert ``values`` and return the new row id."""
        async with self._session_factory() as session, session.begin():
            record = EventMetaData(
                julian_day=values.julian_day,
                ready=values.ready,
                reprocess=values.reprocess,
                interval_in_seconds=values.interval_seconds,
            )
            session.add(record)
            await session.flush()
            return record.id

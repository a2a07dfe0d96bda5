"""Typed structures for dropped event metadata files and queue messages.

The ingested document and the published message both keep the upstream
producer's PascalCase field names; only the persisted shape is typed.
"""

from __future__ import annotations

import msgspec


class EventEntry(msgspec.Struct, frozen=True, kw_only=True):
    """One ``EventDays`` element exactly as it arrived, every field as text.

    Attributes
    ----------
    julian_day : str | None
        Day-of-year identifier (``JulianDay``).
    ready : str | None
        Boolean flag (``Ready``).
    reprocess : str | None
        Boolean flag (``ReProcess``).
    interval_seconds : str | None
        Polling interval in seconds (``IntervalInSeconds``).

    Fields missing from the document decode to ``None``; conversion to the
    typed shape rejects them later, per entry.

    """

    julian_day: str | None = msgspec.field(default=None, name="JulianDay")
    ready: str | None = msgspec.field(default=None, name="Ready")
    reprocess: str | None = msgspec.field(default=None, name="ReProcess")
    interval_seconds: str | None = msgspec.field(
        default=None, name="IntervalInSeconds"
    )

    def describe(self) -> str:
        """Return a compact rendering of the raw fields for log messages."""
        return (
            f"JulianDay={self.julian_day!r} Ready={self.ready!r} "
            f"ReProcess={self.reprocess!r} IntervalInSeconds={self.interval_seconds!r}"
        )


class EventBatch(msgspec.Struct, frozen=True, kw_only=True):
    """Root of a dropped file; ``entries`` is ``None`` when ``EventDays`` is absent."""

    entries: list[EventEntry] | None = msgspec.field(default=None, name="EventDays")


class EventMetadataValues(msgspec.Struct, frozen=True, kw_only=True):
    """Typed values derived from an :class:`EventEntry` for persistence."""

    julian_day: int
    ready: bool
    reprocess: bool
    interval_seconds: int


class QueueMessage(msgspec.Struct, frozen=True, kw_only=True):
    """Message published downstream; mirrors the raw textual entry shape."""

    julian_day: str = msgspec.field(name="JulianDay")
    ready: str = msgspec.field(name="Ready")
    reprocess: str = msgspec.field(name="ReProcess")
    interval_seconds: str = msgspec.field(name="IntervalInSeconds")

    def to_wire(self) -> dict[str, str]:
        """Return the message as a mapping keyed by the wire field names."""
        return msgspec.to_builtins(self)

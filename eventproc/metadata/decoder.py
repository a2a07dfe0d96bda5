"""Decode dropped files into batches and convert entries to typed values."""

from __future__ import annotations

import re

import msgspec

from .errors import EntryConversionError, EventDecodeError
from .models import EventBatch, EventEntry, EventMetadataValues, QueueMessage

_DECODER = msgspec.json.Decoder(EventBatch)

_INTEGER_PATTERN = re.compile(r"\s*[+-]?\d+\s*", re.ASCII)
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_BOOLEAN_VALUES = {"true": True, "false": False}


def decode_event_batch(text: str | bytes, source_name: str) -> EventBatch:
    """Decode and validate one file's content.

    Parameters
    ----------
    text : str | bytes
        Full file content.
    source_name : str
        File name used in error messages.

    Returns
    -------
    EventBatch
        A batch holding at least one entry.

    Raises
    ------
    EventDecodeError
        ``MALFORMED_DOCUMENT`` when the text is not a JSON object of the
        expected shape, ``MISSING_ENTRIES`` when ``EventDays`` is absent,
        misnamed, null or empty.

    """
    try:
        batch = _DECODER.decode(text)
    except msgspec.DecodeError as exc:
        # ValidationError subclasses DecodeError; both mean the document is unusable.
        raise EventDecodeError.malformed(source_name, exc) from exc

    if batch.entries is None:
        raise EventDecodeError.missing_entries(source_name)
    if not batch.entries:
        raise EventDecodeError.empty_entries(source_name)
    return batch


def parse_int(field: str, raw: str | None) -> int:
    """Parse a 32-bit signed integer, tolerating surrounding whitespace."""
    if raw is None or _INTEGER_PATTERN.fullmatch(raw) is None:
        raise EntryConversionError(field, raw, "integer")
    value = int(raw)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise EntryConversionError(field, raw, "integer")
    return value


def parse_bool(field: str, raw: str | None) -> bool:
    """Parse ``true``/``false`` case-insensitively, tolerating surrounding whitespace."""
    if raw is None:
        raise EntryConversionError(field, raw, "boolean")
    try:
        return _BOOLEAN_VALUES[raw.strip().lower()]
    except KeyError as exc:
        raise EntryConversionError(field, raw, "boolean") from exc


def convert_entry(entry: EventEntry) -> EventMetadataValues:
    """Convert a textual entry into the typed values that get persisted.

    Raises
    ------
    EntryConversionError
        If any field is missing or not lexically convertible.

    """
    return EventMetadataValues(
        julian_day=parse_int("JulianDay", entry.julian_day),
        ready=parse_bool("Ready", entry.ready),
        reprocess=parse_bool("ReProcess", entry.reprocess),
        interval_seconds=parse_int("IntervalInSeconds", entry.interval_seconds),
    )


def build_queue_message(entry: EventEntry) -> QueueMessage:
    """Re-serialise an entry's fields as text for publication.

    Raises
    ------
    EntryConversionError
        If a field is missing from the entry.

    """
    fields = {
        "JulianDay": entry.julian_day,
        "Ready": entry.ready,
        "ReProcess": entry.reprocess,
        "IntervalInSeconds": entry.interval_seconds,
    }
    for name, value in fields.items():
        if value is None:
            raise EntryConversionError(name, value, "string")
    return QueueMessage(
        julian_day=str(entry.julian_day),
        ready=str(entry.ready),
        reprocess=str(entry.reprocess),
        interval_seconds=str(entry.interval_seconds),
    )

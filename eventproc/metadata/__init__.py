"""Event metadata documents: typed models, decoding and conversion."""

from __future__ import annotations

from .decoder import (
    build_queue_message,
    convert_entry,
    decode_event_batch,
    parse_bool,
    parse_int,
)
from .errors import DecodeFailure, EntryConversionError, EventDecodeError
from .models import EventBatch, EventEntry, EventMetadataValues, QueueMessage

__all__ = [
    "DecodeFailure",
    "EntryConversionError",
    "EventBatch",
    "EventDecodeError",
    "EventEntry",
    "EventMetadataValues",
    "QueueMessage",
    "build_queue_message",
    "convert_entry",
    "decode_event_batch",
    "parse_bool",
    "parse_int",
]

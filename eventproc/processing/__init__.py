"""Ingestion-and-dispatch pipeline for dropped event metadata files."""

from __future__ import annotations

from .controller import (
    EVENT_FILE_SUFFIX,
    FileUnavailableError,
    IngestionController,
    IngestionResult,
    IngestionStatus,
)
from .dispatcher import DispatchHandle, EntryDispatcher, PersistOutcome, PublishOutcome

__all__ = [
    "EVENT_FILE_SUFFIX",
    "DispatchHandle",
    "EntryDispatcher",
    "FileUnavailableError",
    "IngestionController",
    "IngestionResult",
    "IngestionStatus",
    "PersistOutcome",
    "PublishOutcome",
]

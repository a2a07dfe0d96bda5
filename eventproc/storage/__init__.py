"""Event metadata persistence: table model and insert service."""

from __future__ import annotations

from .models import EventMetaData, init_event_storage
from .service import EventMetadataStore, SqlEventMetadataStore

__all__ = [
    "EventMetaData",
    "EventMetadataStore",
    "SqlEventMetadataStore",
    "init_event_storage",
]

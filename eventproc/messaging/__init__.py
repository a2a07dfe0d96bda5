"""Publication of event metadata messages onto the queue."""

from __future__ import annotations

from .broker import build_broker, rabbitmq_url, should_use_stub_broker
from .client import (
    EVENT_METADATA_ACTOR,
    DramatiqQueueClient,
    DramatiqSendEndpoint,
    QueueClient,
    SendEndpoint,
    parse_destination,
)
from .errors import DestinationError, PublishError

__all__ = [
    "EVENT_METADATA_ACTOR",
    "DestinationError",
    "DramatiqQueueClient",
    "DramatiqSendEndpoint",
    "PublishError",
    "QueueClient",
    "SendEndpoint",
    "build_broker",
    "parse_destination",
    "rabbitmq_url",
    "should_use_stub_broker",
]

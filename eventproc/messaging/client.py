"""Queue client used to publish event metadata messages.

The dispatcher only sees the two protocols below. The Dramatiq-backed
implementation resolves ``rabbitmq:<queue>`` addresses to a queue on the
configured broker and enqueues one message per send.
"""

from __future__ import annotations

import typing as typ

import dramatiq

from .errors import DestinationError, PublishError

if typ.TYPE_CHECKING:
    from eventproc.metadata import QueueMessage

# Actor name downstream workers register to consume event metadata messages.
EVENT_METADATA_ACTOR = "event_metadata_message"

SUPPORTED_PROTOCOLS = frozenset({"rabbitmq", "queue"})


class SendEndpoint(typ.Protocol):
    """A resolved destination that accepts messages."""

    def send(self, message: QueueMessage) -> str:
        """Send ``message`` and return the broker's message id."""
        ...


class QueueClient(typ.Protocol):
    """Resolves publish addresses to send endpoints."""

    def resolve_destination(self, address: str) -> SendEndpoint:
        """Return the endpoint for ``address``."""
        ...


def parse_destination(address: str) -> str:
    """Return the queue name from a ``<protocol>:<queue>`` address.

    Raises
    ------
    DestinationError
        If the address is malformed or names an unsupported protocol.

    """
    protocol, sep, queue_name = address.partition(":")
    if not sep or not protocol or not queue_name.strip():
        raise DestinationError.malformed(address)
    if protocol.lower() not in SUPPORTED_PROTOCOLS:
        raise DestinationError.unsupported_protocol(address, protocol)
    return queue_name.strip()


class DramatiqSendEndpoint:
    """Send endpoint bound to one queue on a Dramatiq broker."""

    def __init__(
        self, broker: dramatiq.Broker, queue_name: str, actor_name: str
    ) -> None:
        """Bind the endpoint to ``queue_name`` on ``broker``."""
        self.broker = broker
        self.queue_name = queue_name
        self.actor_name = actor_name

    def send(self, message: QueueMessage) -> str:
        """Enqueue ``message`` with its wire field names as keyword arguments."""
        envelope = dramatiq.Message(
            queue_name=self.queue_name,
            actor_name=self.actor_name,
            args=(),
            kwargs=message.to_wire(),
            options={},
        )
        try:
            sent = self.broker.enqueue(envelope)
        except dramatiq.DramatiqError as exc:
            raise PublishError(self.queue_name, exc) from exc
        return sent.message_id


class DramatiqQueueClient:
    """Queue client publishing through a Dramatiq broker."""

    def __init__(
        self,
        broker: dramatiq.Broker,
        *,
        actor_name: str = EVENT_METADATA_ACTOR,
    ) -> None:
        """Store the broker and the actor name stamped on every message."""
        self._broker = broker
        self._actor_name = actor_name

    def resolve_destination(self, address: str) -> DramatiqSendEndpoint:
        """Declare the addressed queue and return an endpoint for it."""
        queue_name = parse_destination(address)
        self._broker.declare_queue(queue_name)
        return DramatiqSendEndpoint(self._broker, queue_name, self._actor_name)

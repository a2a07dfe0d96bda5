"""Per-entry fan-out to persistence and publication.

For every entry of a validated batch the dispatcher starts two independent
asyncio tasks, one inserting the typed row and one publishing the textual
message. Neither waits for the other and :meth:`EntryDispatcher.dispatch`
returns before either has finished, so the controller can dispose of the
source file straight away.

Each task resolves to an outcome object instead of raising: failures are
caught and logged inside the task, and the dispatcher keeps every task it
started until it completes, so nothing is left unobserved. Call
:meth:`EntryDispatcher.drain` to wait for outstanding work.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

from eventproc.logging import get_logger, log_error, log_info
from eventproc.metadata import (
    EntryConversionError,
    build_queue_message,
    convert_entry,
)

if typ.TYPE_CHECKING:
    from eventproc.messaging import QueueClient
    from eventproc.metadata import EventBatch, EventEntry, QueueMessage
    from eventproc.storage import EventMetadataStore

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class PersistOutcome:
    """Result of one entry's persist action."""

    entry: EventEntry
    record_id: int | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        """Return True if a row was inserted."""
        return self.error is None


@dataclasses.dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Result of one entry's publish action."""

    entry: EventEntry
    message_id: str | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        """Return True if the broker accepted the message."""
        return self.error is None


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchHandle:
    """The two in-flight actions started for one entry."""

    entry: EventEntry
    persist: asyncio.Task[PersistOutcome]
    publish: asyncio.Task[PublishOutcome]

    async def wait(self) -> tuple[PersistOutcome, PublishOutcome]:
        """Wait for both actions and return their outcomes."""
        return (await self.persist, await self.publish)


class EntryDispatcher:
    """Persist and publish every entry of a batch, independently.

    Parameters
    ----------
    store
        Persistence backend for typed rows.
    queue_client
        Client used to resolve the destination and send messages.
    destination
        ``<queue-protocol>:<queue-name>`` address, fixed for the process.

    """

    def __init__(
        self,
        store: EventMetadataStore,
        queue_client: QueueClient,
        destination: str,
    ) -> None:
        """Bind the dispatcher to its collaborators and destination."""
        self._store = store
        self._queue_client = queue_client
        self.destination = destination
        self._pending: set[asyncio.Task[typ.Any]] = set()

    @property
    def pending(self) -> int:
        """Return the number of actions still in flight."""
        return len(self._pending)

    def dispatch(self, batch: EventBatch) -> list[DispatchHandle]:
        """Start persist and publish for each entry, in order, without waiting.

        Must be called from a running event loop.
        """
        handles: list[DispatchHandle] = []
        for entry in batch.entries or ():
            persist = self._track(asyncio.create_task(self.persist(entry)))
            publish = self._track(asyncio.create_task(self.publish(entry)))
            handles.append(DispatchHandle(entry, persist, publish))
        return handles

    async def drain(self) -> None:
        """Wait until every action started so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def persist(self, entry: EventEntry) -> PersistOutcome:
        """Convert ``entry`` to typed values and insert it."""
        try:
            values = convert_entry(entry)
        except EntryConversionError as exc:
            log_error(
                logger,
                "Unable to convert event metadata (%s): %s",
                entry.describe(),
                exc,
            )
            return PersistOutcome(entry, error=exc)

        try:
            record_id = await self._store.insert_event_metadata(values)
        except Exception as exc:  # noqa: BLE001 - every store failure is logged, not raised
            log_error(
                logger,
                "Issue inserting event metadata (%s): %s",
                entry.describe(),
                exc,
                exc_info=exc,
            )
            return PersistOutcome(entry, error=exc)

        log_info(logger, "Event Meta Data Inserted with ID: %s", record_id)
        return PersistOutcome(entry, record_id=record_id)

    async def publish(self, entry: EventEntry) -> PublishOutcome:
        """Re-serialise ``entry`` as text and send it to the destination."""
        try:
            message = build_queue_message(entry)
            message_id = await asyncio.to_thread(self._send, message)
        except Exception as exc:  # noqa: BLE001 - every publish failure is logged, not raised
            log_error(
                logger,
                "Issue publishing event data message to %s (%s): %s",
                self.destination,
                entry.describe(),
                exc,
                exc_info=exc,
            )
            return PublishOutcome(entry, error=exc)

        return PublishOutcome(entry, message_id=message_id)

    def _send(self, message: QueueMessage) -> str:
        endpoint = self._queue_client.resolve_destination(self.destination)
        return endpoint.send(message)

    def _track[T](self, task: asyncio.Task[T]) -> asyncio.Task[T]:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

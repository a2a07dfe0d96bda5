"""Unit tests for the per-entry dispatcher."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest

from eventproc.messaging import DestinationError
from eventproc.metadata import EventBatch, EventEntry, EventMetadataValues
from eventproc.processing import EntryDispatcher
from tests.helpers.fakes import FakeQueueClient, FakeStore

if typ.TYPE_CHECKING:
    from tests.helpers.logs import CaptureLogs

_DESTINATION = "rabbitmq:eventdata-process"


def _entry(day: str, *, ready: str = "true") -> EventEntry:
    return EventEntry(
        julian_day=day, ready=ready, reprocess="false", interval_seconds="300"
    )


@pytest.mark.asyncio
async def test_dispatch_persists_and_publishes_every_entry_in_order() -> None:
    """N entries yield N inserts and N publishes, in entry order."""
    store = FakeStore()
    client = FakeQueueClient()
    dispatcher = EntryDispatcher(store, client, _DESTINATION)
    batch = EventBatch(entries=[_entry("1"), _entry("2"), _entry("3")])

    handles = dispatcher.dispatch(batch)
    await dispatcher.drain()

    assert [handle.entry.julian_day for handle in handles] == ["1", "2", "3"]
    assert [v.julian_day for v in store.inserted] == [1, 2, 3]
    assert sorted(m.julian_day for m in client.sent) == ["1", "2", "3"]
    assert client.resolved == [_DESTINATION] * 3
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_dispatch_returns_before_actions_finish() -> None:
    """dispatch() does not wait for persistence to complete."""
    store = FakeStore()
    store.release.clear()
    dispatcher = EntryDispatcher(store, FakeQueueClient(), _DESTINATION)

    handles = dispatcher.dispatch(EventBatch(entries=[_entry("7")]))

    assert not handles[0].persist.done()
    assert dispatcher.pending == 2

    store.release.set()
    persisted, published = await handles[0].wait()
    assert persisted.record_id == 1
    assert published.succeeded


@pytest.mark.asyncio
async def test_conversion_failure_skips_persist_but_still_publishes(
    capture_logs: CaptureLogs,
) -> None:
    """A bad field abandons only that entry's insert."""
    logs = capture_logs("eventproc.processing.dispatcher")
    store = FakeStore()
    client = FakeQueueClient()
    dispatcher = EntryDispatcher(store, client, _DESTINATION)
    batch = EventBatch(entries=[_entry("1", ready="maybe"), _entry("2")])

    handles = dispatcher.dispatch(batch)
    outcomes = [await handle.wait() for handle in handles]

    assert outcomes[0][0].succeeded is False
    assert outcomes[0][1].succeeded is True, "publish is independent of persist"
    assert store.inserted == [
        EventMetadataValues(
            julian_day=2, ready=True, reprocess=False, interval_seconds=300
        )
    ]
    assert sorted(m.ready for m in client.sent) == ["maybe", "true"]
    assert logs.contains("Ready must be a valid boolean", "ERROR")


@pytest.mark.asyncio
async def test_store_failure_is_logged_not_raised(capture_logs: CaptureLogs) -> None:
    """An insert failure becomes a failed outcome and an error log."""
    logs = capture_logs("eventproc.processing.dispatcher")
    store = FakeStore(fail_with=RuntimeError("db down"))
    client = FakeQueueClient()
    dispatcher = EntryDispatcher(store, client, _DESTINATION)

    (handle,) = dispatcher.dispatch(EventBatch(entries=[_entry("5")]))
    persisted, published = await handle.wait()

    assert persisted.succeeded is False
    assert isinstance(persisted.error, RuntimeError)
    assert published.succeeded is True
    assert logs.contains("Issue inserting event metadata", "ERROR")


@pytest.mark.asyncio
async def test_successful_insert_logs_assigned_id(capture_logs: CaptureLogs) -> None:
    """The id returned by the store is logged."""
    logs = capture_logs("eventproc.processing.dispatcher")
    dispatcher = EntryDispatcher(FakeStore(), FakeQueueClient(), _DESTINATION)

    dispatcher.dispatch(EventBatch(entries=[_entry("9")]))
    await dispatcher.drain()

    assert logs.messages("INFO") == ["Event Meta Data Inserted with ID: 1"]


@pytest.mark.parametrize(
    "client",
    [
        FakeQueueClient(resolve_error=DestinationError("no such queue")),
        FakeQueueClient(send_error=ConnectionError("broker unreachable")),
    ],
    ids=["resolve", "send"],
)
@pytest.mark.asyncio
async def test_publish_failures_do_not_affect_siblings_or_persistence(
    client: FakeQueueClient, capture_logs: CaptureLogs
) -> None:
    """Publish errors are logged with the entry and never propagate."""
    logs = capture_logs("eventproc.processing.dispatcher")
    store = FakeStore()
    dispatcher = EntryDispatcher(store, client, _DESTINATION)

    handles = dispatcher.dispatch(EventBatch(entries=[_entry("1"), _entry("2")]))
    outcomes = await asyncio.gather(*(handle.wait() for handle in handles))

    assert [published.succeeded for _, published in outcomes] == [False, False]
    assert len(store.inserted) == 2
    errors = logs.messages("ERROR")
    assert len(errors) == 2
    assert all("Issue publishing event data message" in e for e in errors)
    assert "JulianDay='1'" in errors[0] or "JulianDay='1'" in errors[1]

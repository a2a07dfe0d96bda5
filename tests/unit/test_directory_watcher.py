"""Unit tests for the polling directory watcher."""

from __future__ import annotations

import asyncio
import dataclasses
import os
import typing as typ

import pytest

from eventproc.processing import EntryDispatcher, IngestionController
from eventproc.watcher import PollingDirectoryWatcher, WatcherConfig
from tests.helpers.fakes import FakeQueueClient, FakeStore

if typ.TYPE_CHECKING:
    import pathlib

    from tests.helpers.logs import CaptureLogs


@dataclasses.dataclass(frozen=True, slots=True)
class _Handled:
    retryable: bool = False


class _RecordingHandler:
    """Records notifications and deletes the files it is told to consume."""

    def __init__(self, *, consume: bool = True, retryable: bool = False) -> None:
        self.seen: list[str] = []
        self.consume = consume
        self.retryable = retryable

    async def on_file_created(self, path: str | os.PathLike[str] | None) -> _Handled:
        assert path is not None
        self.seen.append(os.path.basename(path))
        if self.consume:
            os.remove(path)
        return _Handled(retryable=self.retryable)


def test_watcher_creates_missing_directory(tmp_path: pathlib.Path) -> None:
    """The watched directory is created on construction."""
    directory = tmp_path / "eventData"

    PollingDirectoryWatcher(directory, _RecordingHandler())

    assert directory.is_dir()


@pytest.mark.asyncio
async def test_tick_notifies_each_file_in_name_order(tmp_path: pathlib.Path) -> None:
    """Every regular file is reported once per tick, sorted by name."""
    for name in ("b.json", "a.json", "c.txt"):
        (tmp_path / name).write_text("{}", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    handler = _RecordingHandler()
    watcher = PollingDirectoryWatcher(tmp_path, handler)

    seen = await watcher.tick()

    assert seen == 3
    assert handler.seen == ["a.json", "b.json", "c.txt"]
    assert await watcher.tick() == 0, "consumed files are not reported again"


@pytest.mark.asyncio
async def test_tick_respects_pattern(tmp_path: pathlib.Path) -> None:
    """Only files matching the configured pattern are reported."""
    (tmp_path / "a.json").write_text("{}", encoding="utf-8")
    (tmp_path / "a.tmp").write_text("{}", encoding="utf-8")
    handler = _RecordingHandler()
    watcher = PollingDirectoryWatcher(
        tmp_path, handler, WatcherConfig(pattern="*.json")
    )

    await watcher.tick()

    assert handler.seen == ["a.json"]


@pytest.mark.asyncio
async def test_retryable_files_are_renotified(tmp_path: pathlib.Path) -> None:
    """Files the handler asks to retry are reported on the next tick."""
    (tmp_path / "held.json").write_text("{}", encoding="utf-8")
    handler = _RecordingHandler(consume=False, retryable=True)
    watcher = PollingDirectoryWatcher(tmp_path, handler)

    await watcher.tick()
    await watcher.tick()

    assert handler.seen == ["held.json", "held.json"]


@pytest.mark.asyncio
async def test_handled_files_left_behind_are_not_renotified(
    tmp_path: pathlib.Path,
) -> None:
    """A handled file that is still present is reported only once."""
    (tmp_path / "stuck.json").write_text("{}", encoding="utf-8")
    handler = _RecordingHandler(consume=False)
    watcher = PollingDirectoryWatcher(tmp_path, handler)

    assert await watcher.tick() == 1
    assert await watcher.tick() == 0
    assert handler.seen == ["stuck.json"]


@pytest.mark.asyncio
async def test_rewritten_file_is_notified_again(tmp_path: pathlib.Path) -> None:
    """A handled file replaced with new content is treated as a new drop."""
    path = tmp_path / "stuck.json"
    path.write_text("{}", encoding="utf-8")
    handler = _RecordingHandler(consume=False)
    watcher = PollingDirectoryWatcher(tmp_path, handler)
    await watcher.tick()

    path.write_text('{"EventDays": []}', encoding="utf-8")

    assert await watcher.tick() == 1
    assert handler.seen == ["stuck.json", "stuck.json"]


@pytest.mark.asyncio
async def test_undeletable_file_is_ingested_once(
    tmp_path: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
    capture_logs: CaptureLogs,
) -> None:
    """A processed file that cannot be removed is ingested only once."""
    capture_logs("eventproc.processing.controller")
    monkeypatch.setattr(
        IngestionController, "_delete", staticmethod(lambda _path: False)
    )
    store = FakeStore()
    client = FakeQueueClient()
    dispatcher = EntryDispatcher(store, client, "rabbitmq:eventdata-process")
    watcher = PollingDirectoryWatcher(tmp_path, IngestionController(dispatcher))
    (tmp_path / "a.json").write_text(
        '{"EventDays":[{"JulianDay":"123","Ready":"true",'
        '"ReProcess":"false","IntervalInSeconds":"300"}]}',
        encoding="utf-8",
    )

    for _ in range(3):
        await watcher.tick()
    await dispatcher.drain()

    assert (tmp_path / "a.json").exists()
    assert len(store.inserted) == 1
    assert len(client.sent) == 1


@pytest.mark.asyncio
async def test_run_keeps_polling_after_a_failed_tick(
    tmp_path: pathlib.Path, capture_logs: CaptureLogs
) -> None:
    """A failing handler is logged and polling continues."""
    logs = capture_logs("eventproc.watcher")
    calls: list[str] = []

    class _Flaky:
        async def on_file_created(
            self, path: str | os.PathLike[str] | None
        ) -> _Handled:
            calls.append(str(path))
            if len(calls) == 1:
                message = "first notification fails"
                raise RuntimeError(message)
            os.remove(typ.cast("str", path))
            return _Handled()

    (tmp_path / "a.json").write_text("{}", encoding="utf-8")
    watcher = PollingDirectoryWatcher(
        tmp_path, _Flaky(), WatcherConfig(poll_interval=0.01)
    )

    task = asyncio.create_task(watcher.run())
    try:
        for _ in range(200):
            if not (tmp_path / "a.json").exists():
                break
            await asyncio.sleep(0.01)
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert len(calls) == 2
    assert logs.contains(f"Polling {tmp_path} failed", "ERROR")

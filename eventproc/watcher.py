"""Polling watcher that notifies the ingestion controller of dropped files."""

from __future__ import annotations

import asyncio
import dataclasses
import pathlib
import typing as typ

from eventproc.logging import get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    import os

logger = get_logger(__name__)

type FileSignature = tuple[int, int]


class NotificationResult(typ.Protocol):
    """What the watcher needs to know about a handled notification."""

    @property
    def retryable(self) -> bool:
        """Return True if the file should be reported again on a later tick."""
        ...


class FileCreatedHandler(typ.Protocol):
    """Receiver of file-creation notifications."""

    async def on_file_created(
        self, path: str | os.PathLike[str] | None
    ) -> NotificationResult:
        """Handle one newly observed file."""
        ...


@dataclasses.dataclass(slots=True)
class WatcherConfig:
    """Configuration for directory polling."""

    pattern: str = "*"
    poll_interval: float = 30.0


class PollingDirectoryWatcher:
    """Poll a directory and notify the handler about every new file.

    Files are reported in name order, one at a time. Once the handler has
    dealt with a file it is not reported again while its modification time
    and size stay the same, even if it could not be removed. Files the
    handler marks as retryable, and notifications that raise, are reported
    again on the next tick.
    """

    def __init__(
        self,
        directory: pathlib.Path,
        handler: FileCreatedHandler,
        config: WatcherConfig | None = None,
    ) -> None:
        """Initialise the watcher and create ``directory`` if it is absent."""
        watcher_config = config or WatcherConfig()

        self.directory = pathlib.Path(directory)
        self.handler = handler
        self.pattern = watcher_config.pattern
        self.poll_interval = watcher_config.poll_interval
        self._handled: dict[pathlib.Path, FileSignature] = {}
        self.directory.mkdir(parents=True, exist_ok=True)

    def pending_files(self) -> list[pathlib.Path]:
        """Return the regular files currently waiting in the directory."""
        return sorted(
            path for path in self.directory.glob(self.pattern) if path.is_file()
        )

    def _snapshot(self) -> dict[pathlib.Path, FileSignature]:
        snapshot: dict[pathlib.Path, FileSignature] = {}
        for path in self.pending_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            snapshot[path] = (stat.st_mtime_ns, stat.st_size)
        return snapshot

    async def tick(self) -> int:
        """Notify the handler about each new or changed file; return how many."""
        snapshot = await asyncio.to_thread(self._snapshot)
        for path in self._handled.keys() - snapshot.keys():
            del self._handled[path]

        notified = 0
        for path, signature in snapshot.items():
            if self._handled.get(path) == signature:
                continue
            result = await self.handler.on_file_created(str(path))
            notified += 1
            if not result.retryable:
                self._handled[path] = signature
        return notified

    async def run(self) -> None:
        """Poll forever, sleeping ``poll_interval`` seconds between ticks."""
        log_info(
            logger,
            "Watching %s every %ss",
            self.directory,
            self.poll_interval,
        )
        while True:
            try:
                await self.tick()
            except Exception as exc:  # noqa: BLE001 - keep polling after a bad tick
                log_exception(logger, f"Polling {self.directory} failed", exc)
            await asyncio.sleep(self.poll_interval)

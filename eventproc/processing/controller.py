"""Ingestion controller reacting to file-creation notifications.

The controller is the single entry point the directory watcher calls. For
every notification it runs the pre-flight checks, reads and decodes the
file, hands the batch to the :class:`~eventproc.processing.dispatcher.EntryDispatcher`
and removes the file. Every failure ends as a log line and an
:class:`IngestionStatus`; nothing is raised back to the watcher.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import fcntl
import os
import typing as typ
from pathlib import Path

from eventproc.logging import get_logger, log_error, log_exception, log_warning
from eventproc.metadata import DecodeFailure, EventDecodeError, decode_event_batch

if typ.TYPE_CHECKING:
    from .dispatcher import DispatchHandle, EntryDispatcher

logger = get_logger(__name__)

EVENT_FILE_SUFFIX = ".json"


class IngestionStatus(enum.StrEnum):
    """How a single notification was handled."""

    PROCESSED = "processed"
    NULL_PATH = "null_path"
    MISSING = "missing"
    EMPTY = "empty"
    NOT_JSON = "not_json"
    UNAVAILABLE = "unavailable"
    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_ENTRIES = "missing_entries"
    FAILED = "failed"


_DECODE_STATUS = {
    DecodeFailure.MALFORMED_DOCUMENT: IngestionStatus.MALFORMED_DOCUMENT,
    DecodeFailure.MISSING_ENTRIES: IngestionStatus.MISSING_ENTRIES,
}


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionResult:
    """Outcome of one ``on_file_created`` call."""

    status: IngestionStatus
    path: str | None
    handles: tuple[DispatchHandle, ...] = ()
    deleted: bool = False

    @property
    def retryable(self) -> bool:
        """Return True if the file was left in place for a later notification."""
        return self.status is IngestionStatus.UNAVAILABLE


class FileUnavailableError(OSError):
    """Raised when a writer still holds the dropped file."""


def _read_when_available(path: Path) -> str:
    """Read the whole file under a shared, non-blocking lock.

    Raises
    ------
    FileUnavailableError
        If another process holds an exclusive lock on the file.

    """
    with path.open(encoding="utf-8-sig") as handle:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            raise FileUnavailableError(str(exc)) from exc
        try:
            return handle.read()
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class IngestionController:
    """Handle dropped event metadata files one notification at a time."""

    def __init__(self, dispatcher: EntryDispatcher) -> None:
        """Store the dispatcher that receives validated batches."""
        self.dispatcher = dispatcher

    async def on_file_created(
        self, path: str | os.PathLike[str] | None
    ) -> IngestionResult:
        """Process the file at ``path``; safe to call with any value.

        The file is deleted once it has been read and handed on, whatever the
        decode outcome. Files without a ``.json`` extension are deleted unread.
        A file still held by its writer is left in place so a later
        notification can pick it up.
        """
        if path is None or not os.fspath(path):
            log_error(logger, "File path is null or empty")
            return IngestionResult(IngestionStatus.NULL_PATH, None)

        file_path = Path(path)
        name = str(file_path)

        try:
            size = file_path.stat().st_size if file_path.is_file() else None
        except OSError:
            size = None
        if size is None:
            log_error(logger, "File: %s does not exist", name)
            return IngestionResult(IngestionStatus.MISSING, name)

        if file_path.suffix.lower() != EVENT_FILE_SUFFIX:
            log_error(logger, "File: %s is not a %s file", name, EVENT_FILE_SUFFIX)
            deleted = self._delete(file_path)
            return IngestionResult(IngestionStatus.NOT_JSON, name, deleted=deleted)

        if size == 0:
            log_error(logger, "File: %s is empty", name)
            deleted = self._delete(file_path)
            return IngestionResult(IngestionStatus.EMPTY, name, deleted=deleted)

        status, handles = await self._process(file_path)
        if status is IngestionStatus.UNAVAILABLE:
            return IngestionResult(status, name)

        deleted = self._delete(file_path)
        return IngestionResult(status, name, handles=handles, deleted=deleted)

    async def _process(
        self, file_path: Path
    ) -> tuple[IngestionStatus, tuple[DispatchHandle, ...]]:
        try:
            text = await asyncio.to_thread(_read_when_available, file_path)
        except FileUnavailableError:
            log_warning(logger, "File: %s is not yet available; skipping", file_path)
            return (IngestionStatus.UNAVAILABLE, ())
        except Exception as exc:  # noqa: BLE001 - reported, file still removed
            log_exception(logger, f"Error in Processing EventMetaData {file_path}", exc)
            return (IngestionStatus.FAILED, ())

        try:
            batch = decode_event_batch(text, file_path.name)
            handles = self.dispatcher.dispatch(batch)
        except EventDecodeError as exc:
            log_error(logger, "%s", exc.detail)
            return (_DECODE_STATUS[exc.failure], ())
        except Exception as exc:  # noqa: BLE001 - reported, file still removed
            log_exception(logger, f"Error in Processing EventMetaData {file_path}", exc)
            return (IngestionStatus.FAILED, ())

        return (IngestionStatus.PROCESSED, tuple(handles))

    @staticmethod
    def _delete(file_path: Path) -> bool:
        try:
            file_path.unlink(missing_ok=True)
        except OSError as exc:
            log_exception(logger, f"Unable to delete {file_path}", exc)
            return False
        return True

"""Shared fixtures for eventproc tests."""

from __future__ import annotations

import typing as typ

import dramatiq
import pytest
import pytest_asyncio
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from eventproc.storage import init_event_storage
from tests.helpers.logs import RecordingLogger

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tests.helpers.logs import CaptureLogs


@pytest.fixture
def capture_logs(monkeypatch: pytest.MonkeyPatch) -> CaptureLogs:
    """Return a function that swaps a module's ``logger`` for a recorder."""

    def _capture(module: str) -> RecordingLogger:
        recorder = RecordingLogger()
        monkeypatch.setattr(f"{module}.logger", recorder)
        return recorder

    return _capture


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory over a fresh SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'events.db'}")
    try:
        await init_event_storage(engine)
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def stub_broker() -> typ.Iterator[StubBroker]:
    """Provide a stub Dramatiq broker installed as the global broker."""
    broker = StubBroker()
    dramatiq.set_broker(broker)
    yield broker
    broker.close()

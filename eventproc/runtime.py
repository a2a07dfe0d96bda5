"""Process entrypoint for the event metadata processor.

Configuration is driven by environment variables (see
:class:`eventproc.config.ProcessorConfig`):

- ``EVENT_META_DATA_DIRECTORY``: directory to watch (created if missing)
- ``EVENTDATA_PROCESS_QUEUE``: queue every entry is published to
- ``FILE_POLLING_INTERVAL``: poll interval in milliseconds (default ``30000``)
- ``DB_CONNECTION_STRING``: SQLAlchemy async database URL
- ``RABBITMQ_HOSTNAME``/``RABBITMQ_PORT``/``RABBITMQ_USERNAME``/``RABBITMQ_PASSWORD``
- ``EVENTPROC_LOG_LEVEL``: log level (default ``INFO``)

Run the service with ``eventproc`` or ``python -m eventproc.runtime``.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from eventproc.config import ConfigError, ProcessorConfig
from eventproc.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from eventproc.messaging import DramatiqQueueClient, build_broker
from eventproc.processing import (
    EVENT_FILE_SUFFIX,
    EntryDispatcher,
    IngestionController,
)
from eventproc.storage import SqlEventMetadataStore, init_event_storage
from eventproc.watcher import PollingDirectoryWatcher, WatcherConfig

if typ.TYPE_CHECKING:
    import dramatiq
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["EventProcessor", "build_processor", "main", "serve"]

logger = get_logger(__name__)


@dataclasses.dataclass(slots=True)
class EventProcessor:
    """Wired components of one running processor."""

    config: ProcessorConfig
    engine: AsyncEngine
    broker: dramatiq.Broker
    dispatcher: EntryDispatcher
    controller: IngestionController
    watcher: PollingDirectoryWatcher


def build_processor(
    config: ProcessorConfig, *, broker: dramatiq.Broker | None = None
) -> EventProcessor:
    """Construct the processor's components from ``config``."""
    engine = create_async_engine(config.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    active_broker = broker if broker is not None else build_broker(config.broker)

    dispatcher = EntryDispatcher(
        SqlEventMetadataStore(session_factory),
        DramatiqQueueClient(active_broker),
        config.destination_address,
    )
    controller = IngestionController(dispatcher)
    watcher = PollingDirectoryWatcher(
        config.event_data_dir,
        controller,
        WatcherConfig(
            pattern=f"*{EVENT_FILE_SUFFIX}",
            poll_interval=config.polling_interval,
        ),
    )
    return EventProcessor(
        config=config,
        engine=engine,
        broker=active_broker,
        dispatcher=dispatcher,
        controller=controller,
        watcher=watcher,
    )


async def serve(processor: EventProcessor) -> None:
    """Create tables, then poll until cancelled, draining in-flight work on exit."""
    await init_event_storage(processor.engine)
    try:
        await processor.watcher.run()
    finally:
        await processor.dispatcher.drain()
        await processor.engine.dispose()
        processor.broker.close()


def main() -> None:
    """Load configuration from the environment and run the processor."""
    try:
        config = ProcessorConfig.from_env()
    except ConfigError as exc:
        configure_logging("INFO")
        log_error(logger, "Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid EVENTPROC_LOG_LEVEL %r, falling back to %s",
            config.log_level,
            normalized_level,
        )

    log_info(
        logger,
        "Starting event processor for %s -> %s (log_level=%s)",
        config.event_data_dir,
        config.destination_address,
        normalized_level,
    )
    processor = build_processor(config)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(processor))


if __name__ == "__main__":
    main()

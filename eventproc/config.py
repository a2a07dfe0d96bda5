"""Process configuration for the event metadata processor.

All settings come from the environment and are read once at startup. The
resulting :class:`ProcessorConfig` is immutable and handed to the components
that need it; nothing downstream reads the environment again.

Usage
-----
>>> import os
>>> os.environ["EVENT_META_DATA_DIRECTORY"] = "/data/events"
>>> os.environ["EVENTDATA_PROCESS_QUEUE"] = "eventdata-process"
>>> os.environ["DB_CONNECTION_STRING"] = "sqlite+aiosqlite:///events.db"
>>> os.environ["RABBITMQ_HOSTNAME"] = "rabbitmq"
>>> config = ProcessorConfig.from_env()
>>> config.destination_address
'rabbitmq:eventdata-process'

"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ
from pathlib import Path

if typ.TYPE_CHECKING:
    import collections.abc as cabc

EVENT_META_DATA_DIRECTORY = "EVENT_META_DATA_DIRECTORY"
EVENTDATA_PROCESS_QUEUE = "EVENTDATA_PROCESS_QUEUE"
FILE_POLLING_INTERVAL = "FILE_POLLING_INTERVAL"
DB_CONNECTION_STRING = "DB_CONNECTION_STRING"
RABBITMQ_HOSTNAME = "RABBITMQ_HOSTNAME"
RABBITMQ_PORT = "RABBITMQ_PORT"
RABBITMQ_USERNAME = "RABBITMQ_USERNAME"
RABBITMQ_PASSWORD = "RABBITMQ_PASSWORD"  # noqa: S105 - variable name, not a secret
RABBITMQ_VHOST = "RABBITMQ_VHOST"
LOG_LEVEL = "EVENTPROC_LOG_LEVEL"

RABBITMQ_QUEUE_PROTOCOL = "rabbitmq"

DEFAULT_POLLING_INTERVAL_MS = 30_000
DEFAULT_RABBITMQ_PORT = 5672

_MAX_PORT = 65535


class ConfigError(ValueError):
    """Raised when the environment does not describe a usable configuration."""

    @classmethod
    def missing(cls, name: str) -> ConfigError:
        """Return an error for a required variable that is unset or blank."""
        return cls(f"{name} must be set")

    @classmethod
    def not_an_integer(cls, name: str, raw: str) -> ConfigError:
        """Return an error for a variable that should hold an integer."""
        return cls(f"{name} must be an integer, got: {raw!r}")

    @classmethod
    def out_of_range(cls, name: str, value: int) -> ConfigError:
        """Return an error for an integer outside its accepted range."""
        return cls(f"{name} is out of range, got: {value}")


@dc.dataclass(frozen=True, slots=True)
class BrokerSettings:
    """Connection settings for the RabbitMQ broker."""

    hostname: str
    port: int = DEFAULT_RABBITMQ_PORT
    username: str | None = None
    password: str | None = dc.field(default=None, repr=False)
    virtual_host: str = "/"


@dc.dataclass(frozen=True, slots=True)
class ProcessorConfig:
    """Settings for one event processor process.

    Attributes
    ----------
    event_data_dir
        Directory the upstream producer drops event metadata files into.
    queue_name
        Name of the queue every entry is published to.
    database_url
        SQLAlchemy async URL for the event metadata store.
    broker
        RabbitMQ connection settings.
    polling_interval_ms
        Delay between directory polls, in milliseconds.
    log_level
        Raw log level; normalized by :func:`eventproc.logging.configure_logging`.

    """

    event_data_dir: Path
    queue_name: str
    database_url: str
    broker: BrokerSettings
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    log_level: str = "INFO"

    @property
    def polling_interval(self) -> float:
        """Return the polling interval in seconds."""
        return self.polling_interval_ms / 1000

    @property
    def destination_address(self) -> str:
        """Return the ``<queue-protocol>:<queue-name>`` publish address."""
        return f"{RABBITMQ_QUEUE_PROTOCOL}:{self.queue_name}"

    @classmethod
    def from_env(cls, environ: cabc.Mapping[str, str] | None = None) -> ProcessorConfig:
        """Build the configuration from environment variables.

        Raises
        ------
        ConfigError
            If a required variable is missing or an integer is malformed.

        """
        env = os.environ if environ is None else environ

        broker = BrokerSettings(
            hostname=_require(env, RABBITMQ_HOSTNAME),
            port=_parse_int(env, RABBITMQ_PORT, DEFAULT_RABBITMQ_PORT, upper=_MAX_PORT),
            username=_optional(env, RABBITMQ_USERNAME),
            password=_optional(env, RABBITMQ_PASSWORD),
            virtual_host=_optional(env, RABBITMQ_VHOST) or "/",
        )
        return cls(
            event_data_dir=Path(_require(env, EVENT_META_DATA_DIRECTORY)),
            queue_name=_require(env, EVENTDATA_PROCESS_QUEUE),
            database_url=_require(env, DB_CONNECTION_STRING),
            broker=broker,
            polling_interval_ms=_parse_int(
                env, FILE_POLLING_INTERVAL, DEFAULT_POLLING_INTERVAL_MS
            ),
            log_level=_optional(env, LOG_LEVEL) or "INFO",
        )


def _optional(env: cabc.Mapping[str, str], name: str) -> str | None:
    raw = env.get(name, "").strip()
    return raw or None


def _require(env: cabc.Mapping[str, str], name: str) -> str:
    value = _optional(env, name)
    if value is None:
        raise ConfigError.missing(name)
    return value


def _parse_int(
    env: cabc.Mapping[str, str], name: str, default: int, *, upper: int | None = None
) -> int:
    """Read a positive integer variable, falling back to ``default`` when unset."""
    raw = _optional(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError.not_an_integer(name, raw) from exc
    if value < 1 or (upper is not None and value > upper):
        raise ConfigError.out_of_range(name, value)
    return value

"""Dramatiq broker selection for the event processor.

Production processes talk to RabbitMQ. Test runs, and local runs that set
``EVENTPROC_ALLOW_STUB_BROKER``, get Dramatiq's in-memory ``StubBroker`` so
nothing needs a live broker.
"""

from __future__ import annotations

import os
import sys
import typing as typ
from urllib.parse import quote

import dramatiq
from dramatiq.brokers.stub import StubBroker

if typ.TYPE_CHECKING:
    from eventproc.config import BrokerSettings

ALLOW_STUB_BROKER = "EVENTPROC_ALLOW_STUB_BROKER"


def _is_running_tests() -> bool:
    """Return True when the process is running under pytest."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def should_use_stub_broker() -> bool:
    """Return True if the in-memory broker should replace RabbitMQ."""
    allow_stub = os.environ.get(ALLOW_STUB_BROKER, "")
    return allow_stub.lower() in {"1", "true", "yes"} or _is_running_tests()


def rabbitmq_url(settings: BrokerSettings) -> str:
    """Return the AMQP URL for ``settings`` with credentials and vhost escaped."""
    credentials = ""
    if settings.username:
        credentials = quote(settings.username, safe="")
        if settings.password:
            credentials = f"{credentials}:{quote(settings.password, safe='')}"
        credentials = f"{credentials}@"
    vhost = quote(settings.virtual_host, safe="")
    return f"amqp://{credentials}{settings.hostname}:{settings.port}/{vhost}"


def build_broker(settings: BrokerSettings) -> dramatiq.Broker:
    """Create the broker for this process and install it as Dramatiq's global.

    Returns
    -------
    dramatiq.Broker
        A ``StubBroker`` when stubbing is allowed, otherwise a
        ``RabbitmqBroker`` connected to ``settings``.

    """
    if should_use_stub_broker():
        broker: dramatiq.Broker = StubBroker()
    else:  # pragma: no cover - needs a live RabbitMQ
        from dramatiq.brokers.rabbitmq import RabbitmqBroker

        broker = RabbitmqBroker(url=rabbitmq_url(settings))

    dramatiq.set_broker(broker)
    return broker

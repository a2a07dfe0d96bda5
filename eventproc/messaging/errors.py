"""Errors raised while resolving destinations and publishing messages."""

from __future__ import annotations


class DestinationError(RuntimeError):
    """Raised when a publish address cannot be resolved to a queue."""

    @classmethod
    def malformed(cls, address: str) -> DestinationError:
        """Return an error for an address without ``<protocol>:<queue>`` form."""
        return cls(f"destination {address!r} must look like '<protocol>:<queue>'")

    @classmethod
    def unsupported_protocol(cls, address: str, protocol: str) -> DestinationError:
        """Return an error for an address using an unknown queue protocol."""
        return cls(f"destination {address!r} uses unsupported protocol {protocol!r}")


class PublishError(RuntimeError):
    """Raised when the broker refuses or fails to accept a message."""

    def __init__(self, queue_name: str, cause: BaseException) -> None:
        """Record the target queue alongside the broker failure."""
        self.queue_name = queue_name
        super().__init__(f"failed to send message to queue {queue_name!r}: {cause}")

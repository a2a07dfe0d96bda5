"""Errors raised while decoding and converting event metadata."""

from __future__ import annotations

import enum


class DecodeFailure(enum.StrEnum):
    """Reasons a dropped file is rejected as a whole."""

    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_ENTRIES = "missing_entries"


class EventDecodeError(ValueError):
    """Raised when a file's text cannot be turned into a usable batch."""

    def __init__(self, failure: DecodeFailure, source_name: str, detail: str) -> None:
        """Record the failure kind and the file it came from."""
        self.failure = failure
        self.source_name = source_name
        self.detail = detail
        super().__init__(detail)

    @classmethod
    def malformed(cls, source_name: str, cause: object) -> EventDecodeError:
        """Return an error for text that does not decode to an EventData object."""
        return cls(
            DecodeFailure.MALFORMED_DOCUMENT,
            source_name,
            f"Unable to deserialize {source_name} to an EventData object: {cause}",
        )

    @classmethod
    def missing_entries(cls, source_name: str) -> EventDecodeError:
        """Return an error for a document without an ``EventDays`` array."""
        return cls(
            DecodeFailure.MISSING_ENTRIES,
            source_name,
            f"{source_name} doesn't contain an EventDays object",
        )

    @classmethod
    def empty_entries(cls, source_name: str) -> EventDecodeError:
        """Return an error for a document whose ``EventDays`` array is empty."""
        return cls(
            DecodeFailure.MISSING_ENTRIES,
            source_name,
            f"{source_name} doesn't contain any EventDay data",
        )


class EntryConversionError(ValueError):
    """Raised when a textual entry field cannot be converted to its target type."""

    def __init__(self, field: str, raw: str | None, expected: str) -> None:
        """Record which field failed and what it held."""
        self.field = field
        self.raw = raw
        super().__init__(f"{field} must be a valid {expected}, got: {raw!r}")

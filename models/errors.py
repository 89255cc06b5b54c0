"""Exceptions raised by the store, the record services and the payload parser."""

from __future__ import annotations


class StorageError(RuntimeError):
    """The backing table could not complete a read or write."""


class RecordValidationError(ValueError):
    """A create payload is missing a required field or carries the wrong type."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} must be a number")


class PayloadError(ValueError):
    """A message-bus payload could not be decoded into a sensor reading."""

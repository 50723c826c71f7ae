from __future__ import annotations


class RealtimeError(Exception):
    """Base class for failures raised by the realtime layer."""

    default_message = "Realtime operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PersistenceError(RealtimeError):
    """The backing store could not persist a record; nothing was pushed."""

    default_message = "Failed to persist record"


class MessageValidationError(RealtimeError):
    """A direct message payload was rejected before reaching the store."""

    default_message = "Recipient ID and content are required"

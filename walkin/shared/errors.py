"""Error taxonomy for the queue subsystem."""

from __future__ import annotations


class QueueError(Exception):
    """Base class for every error raised by the queue subsystem."""


class ValidationError(QueueError):
    """Malformed input for a queue mutation."""


class NotFoundError(QueueError):
    """Referenced queue entry does not exist."""

    def __init__(self, entry_id: int):
        super().__init__(f"Queue entry {entry_id} not found")
        self.entry_id = entry_id


class AlreadyCompletedError(QueueError):
    """Entry was already completed (duplicate click or lost race)."""

    def __init__(self, entry_id: int):
        super().__init__(f"Queue entry {entry_id} is already completed")
        self.entry_id = entry_id


class TransportError(QueueError):
    """Sending a frame to one live connection failed."""


class ConnectionLost(QueueError):
    """Client-side socket closed or failed; the agent reconnects."""

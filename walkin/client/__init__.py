"""Client-side sync agent for the walk-in queue."""

from .sync_agent import ConnectionState, LocalSnapshot, QueueSyncAgent

__all__ = ["ConnectionState", "LocalSnapshot", "QueueSyncAgent"]

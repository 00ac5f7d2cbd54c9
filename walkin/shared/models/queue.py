"""Data model for the queue_entries table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class QueueEntry:
    """Walk-in queue entry record."""

    id: int
    service_type: str
    estimated_duration: int  # minutes
    created_at: datetime
    actual_duration: int | None = None  # minutes, set once on completion
    is_completed: bool = False
    completed_at: datetime | None = None

"""Data model for the queue_analytics table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class QueueAnalytics:
    """Hourly queue-length sample."""

    id: int
    date: date
    hour: int
    day_of_week: int  # Monday=0
    queue_length: int
    average_wait_time: int  # minutes
    created_at: datetime | None = None

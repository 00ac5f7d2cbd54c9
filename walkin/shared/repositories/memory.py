"""In-process repositories.

Used when no DATABASE_URL is configured and in tests. Each operation runs
without suspending between its read and its write, so on a single event loop
it is as atomic as the corresponding SQL statement.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import UTC, date, datetime

from ..models import ChatMessage, QueueAnalytics, QueueEntry


class MemoryQueueEntryRepository:
    def __init__(self) -> None:
        self._entries: dict[int, QueueEntry] = {}
        self._ids = itertools.count(1)

    async def add_entry(self, service_type: str, estimated_duration: int) -> QueueEntry:
        entry = QueueEntry(
            id=next(self._ids),
            service_type=service_type,
            estimated_duration=estimated_duration,
            created_at=datetime.now(UTC),
        )
        self._entries[entry.id] = entry
        return replace(entry)

    async def get_entry(self, entry_id: int) -> QueueEntry | None:
        entry = self._entries.get(entry_id)
        return replace(entry) if entry else None

    async def get_outstanding_entries(self) -> list[QueueEntry]:
        outstanding = [e for e in self._entries.values() if not e.is_completed]
        outstanding.sort(key=lambda e: (e.created_at, e.id))
        return [replace(e) for e in outstanding]

    async def count_outstanding(self) -> int:
        return sum(1 for e in self._entries.values() if not e.is_completed)

    async def complete_entry(self, entry_id: int, actual_duration: int) -> QueueEntry | None:
        entry = self._entries.get(entry_id)
        if entry is None or entry.is_completed:
            return None
        entry.is_completed = True
        entry.actual_duration = actual_duration
        entry.completed_at = datetime.now(UTC)
        return replace(entry)


class MemoryChatMessageRepository:
    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self._ids = itertools.count(1)

    async def add_message(self, user_id: str, message: str, is_from_user: bool) -> ChatMessage:
        msg = ChatMessage(
            id=next(self._ids),
            user_id=user_id,
            message=message,
            is_from_user=is_from_user,
            timestamp=datetime.now(UTC),
        )
        self._messages.append(msg)
        return msg

    async def get_history(self, user_id: str) -> list[ChatMessage]:
        history = [m for m in self._messages if m.user_id == user_id]
        history.sort(key=lambda m: (m.timestamp, m.id))
        return history


class MemoryQueueAnalyticsRepository:
    def __init__(self) -> None:
        self._samples: dict[tuple[date, int], QueueAnalytics] = {}
        self._ids = itertools.count(1)

    async def add_sample(
        self,
        sample_date: date,
        hour: int,
        day_of_week: int,
        queue_length: int,
        average_wait_time: int,
    ) -> QueueAnalytics:
        key = (sample_date, hour)
        existing = self._samples.get(key)
        sample = QueueAnalytics(
            id=existing.id if existing else next(self._ids),
            date=sample_date,
            hour=hour,
            day_of_week=day_of_week,
            queue_length=queue_length,
            average_wait_time=average_wait_time,
            created_at=existing.created_at if existing else datetime.now(UTC),
        )
        self._samples[key] = sample
        return sample

    async def get_for_date(self, sample_date: date) -> list[QueueAnalytics]:
        return sorted(
            (s for (d, _), s in self._samples.items() if d == sample_date),
            key=lambda s: s.hour,
        )

    async def has_sample(self, sample_date: date, hour: int) -> bool:
        return (sample_date, hour) in self._samples

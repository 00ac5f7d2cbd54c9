"""Storage interfaces the services depend on.

Implemented by the asyncpg repositories (production) and the in-memory
repositories (local development without a database, tests).
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from ..models import ChatMessage, QueueAnalytics, QueueEntry


class QueueStore(Protocol):
    async def add_entry(self, service_type: str, estimated_duration: int) -> QueueEntry:
        """Atomically insert a new, incomplete entry."""

    async def get_entry(self, entry_id: int) -> QueueEntry | None: ...

    async def get_outstanding_entries(self) -> list[QueueEntry]:
        """Incomplete entries, oldest first."""

    async def count_outstanding(self) -> int: ...

    async def complete_entry(self, entry_id: int, actual_duration: int) -> QueueEntry | None:
        """Mark an incomplete entry completed.

        Guarded on ``is_completed = FALSE``: returns ``None`` when the entry is
        unknown or was already completed, so only one of several racing
        callers wins.
        """


class ChatStore(Protocol):
    async def add_message(self, user_id: str, message: str, is_from_user: bool) -> ChatMessage: ...

    async def get_history(self, user_id: str) -> list[ChatMessage]:
        """Messages of one conversation ordered by timestamp."""


class AnalyticsStore(Protocol):
    async def add_sample(
        self,
        sample_date: date,
        hour: int,
        day_of_week: int,
        queue_length: int,
        average_wait_time: int,
    ) -> QueueAnalytics: ...

    async def get_for_date(self, sample_date: date) -> list[QueueAnalytics]: ...

    async def has_sample(self, sample_date: date, hour: int) -> bool: ...


__all__ = ["AnalyticsStore", "ChatStore", "QueueStore"]

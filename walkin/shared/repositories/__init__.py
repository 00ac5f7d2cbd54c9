"""Repository layer for the queue service tables."""

from .analytics import QueueAnalyticsRepository
from .base import AnalyticsStore, ChatStore, QueueStore
from .chat import ChatMessageRepository
from .memory import (
    MemoryChatMessageRepository,
    MemoryQueueAnalyticsRepository,
    MemoryQueueEntryRepository,
)
from .queue import QueueEntryRepository

__all__ = [
    "AnalyticsStore",
    "ChatMessageRepository",
    "ChatStore",
    "MemoryChatMessageRepository",
    "MemoryQueueAnalyticsRepository",
    "MemoryQueueEntryRepository",
    "QueueAnalyticsRepository",
    "QueueEntryRepository",
    "QueueStore",
]

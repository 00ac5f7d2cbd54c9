"""Data models for the queue service tables."""

from .analytics import QueueAnalytics
from .chat import ChatMessage
from .queue import QueueEntry

__all__ = [
    "ChatMessage",
    "QueueAnalytics",
    "QueueEntry",
]

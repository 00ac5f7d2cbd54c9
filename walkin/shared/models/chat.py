"""Data model for the ai_chat_messages table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ChatMessage:
    """Append-only chat message; ordered by timestamp within a user's conversation."""

    id: int
    user_id: str
    message: str
    is_from_user: bool
    timestamp: datetime

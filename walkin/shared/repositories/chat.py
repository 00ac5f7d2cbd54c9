"""Repository for the ai_chat_messages table."""

from __future__ import annotations

import asyncpg

from ..models.chat import ChatMessage

_MESSAGE_COLUMNS = "id, user_id, message, is_from_user, timestamp"


class ChatMessageRepository:
    """Append-only chat storage."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add_message(self, user_id: str, message: str, is_from_user: bool) -> ChatMessage:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO ai_chat_messages (user_id, message, is_from_user)
                VALUES ($1, $2, $3)
                RETURNING {_MESSAGE_COLUMNS}
                """,
                user_id,
                message,
                is_from_user,
            )
            return ChatMessage(**dict(row))

    async def get_history(self, user_id: str) -> list[ChatMessage]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_MESSAGE_COLUMNS} FROM ai_chat_messages "
                "WHERE user_id = $1 ORDER BY timestamp ASC, id ASC",
                user_id,
            )
            return [ChatMessage(**dict(row)) for row in rows]

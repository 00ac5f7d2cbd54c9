"""Repository for the queue_entries table."""

from __future__ import annotations

import logging

import asyncpg

from ..models.queue import QueueEntry

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = (
    "id, service_type, estimated_duration, actual_duration, is_completed, created_at, completed_at"
)


class QueueEntryRepository:
    """Pure SQL operations for queue_entries."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add_entry(self, service_type: str, estimated_duration: int) -> QueueEntry:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO queue_entries (service_type, estimated_duration)
                VALUES ($1, $2)
                RETURNING {_ENTRY_COLUMNS}
                """,
                service_type,
                estimated_duration,
            )
            return QueueEntry(**dict(row))

    async def get_entry(self, entry_id: int) -> QueueEntry | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_ENTRY_COLUMNS} FROM queue_entries WHERE id = $1",
                entry_id,
            )
            if not row:
                return None
            return QueueEntry(**dict(row))

    async def get_outstanding_entries(self) -> list[QueueEntry]:
        """Get all incomplete entries ordered by created_at ASC."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_ENTRY_COLUMNS} FROM queue_entries "
                "WHERE is_completed = FALSE "
                "ORDER BY created_at ASC, id ASC"
            )
            return [QueueEntry(**dict(row)) for row in rows]

    async def count_outstanding(self) -> int:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM queue_entries WHERE is_completed = FALSE"
            )

    async def complete_entry(self, entry_id: int, actual_duration: int) -> QueueEntry | None:
        """Complete an entry. Returns None if unknown or already completed."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE queue_entries
                SET is_completed = TRUE, actual_duration = $2, completed_at = NOW()
                WHERE id = $1 AND is_completed = FALSE
                RETURNING {_ENTRY_COLUMNS}
                """,
                entry_id,
                actual_duration,
            )
            if not row:
                return None
            return QueueEntry(**dict(row))

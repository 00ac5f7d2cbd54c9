"""Repository for the queue_analytics table."""

from __future__ import annotations

from datetime import date

import asyncpg

from ..models.analytics import QueueAnalytics

_SAMPLE_COLUMNS = "id, date, hour, day_of_week, queue_length, average_wait_time, created_at"


class QueueAnalyticsRepository:
    """Hourly queue-length samples."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add_sample(
        self,
        sample_date: date,
        hour: int,
        day_of_week: int,
        queue_length: int,
        average_wait_time: int,
    ) -> QueueAnalytics:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO queue_analytics
                    (date, hour, day_of_week, queue_length, average_wait_time)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (date, hour) DO UPDATE SET
                    queue_length = EXCLUDED.queue_length,
                    average_wait_time = EXCLUDED.average_wait_time
                RETURNING {_SAMPLE_COLUMNS}
                """,
                sample_date,
                hour,
                day_of_week,
                queue_length,
                average_wait_time,
            )
            return QueueAnalytics(**dict(row))

    async def get_for_date(self, sample_date: date) -> list[QueueAnalytics]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_SAMPLE_COLUMNS} FROM queue_analytics "
                "WHERE date = $1 ORDER BY hour ASC",
                sample_date,
            )
            return [QueueAnalytics(**dict(row)) for row in rows]

    async def has_sample(self, sample_date: date, hour: int) -> bool:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM queue_analytics WHERE date = $1 AND hour = $2)",
                sample_date,
                hour,
            )

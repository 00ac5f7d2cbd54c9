"""Queue service: business-logic layer for the walk-in queue.

Every mutation runs store write → snapshot recompute → broadcast. The count
is re-derived from the store on every snapshot instead of being kept as a
separate counter, so it can never drift from the persisted entries.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from walkin.shared.business_hours import BusinessSchedule, business_status, local_time
from walkin.shared.errors import AlreadyCompletedError, NotFoundError, ValidationError
from walkin.shared.models import QueueAnalytics, QueueEntry
from walkin.shared.repositories import AnalyticsStore, QueueStore
from walkin.shared.snapshot import DEFAULT_MINUTES_PER_CUSTOMER, QueueSnapshot, estimate_wait

from .broadcast_hub import BroadcastHub

logger = logging.getLogger(__name__)


def _require_int(name: str, value: object, *, minimum: int) -> int:
    # bool is an int subclass; True must not pass as a duration
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return value


class QueueService:
    """Mutations and derived view of the walk-in queue."""

    def __init__(
        self,
        store: QueueStore,
        hub: BroadcastHub,
        *,
        schedule: BusinessSchedule | None = None,
        analytics: AnalyticsStore | None = None,
        minutes_per_customer: int = DEFAULT_MINUTES_PER_CUSTOMER,
    ) -> None:
        self.store = store
        self.hub = hub
        self.schedule = schedule or BusinessSchedule()
        self.analytics = analytics
        self.minutes_per_customer = minutes_per_customer

    # -------------------- mutations --------------------

    async def enqueue(self, service_type: str, estimated_duration_minutes: int) -> QueueEntry:
        """Add a waiting customer."""
        if not isinstance(service_type, str) or not service_type.strip():
            raise ValidationError("serviceType must be a non-empty string")
        duration = _require_int("estimatedDurationMinutes", estimated_duration_minutes, minimum=1)

        entry = await self.store.add_entry(service_type.strip(), duration)
        logger.info(f"Queue entry {entry.id} added ({entry.service_type}, ~{duration} min)")
        await self.publish_snapshot()
        return entry

    async def complete(self, entry_id: int, actual_duration_minutes: int) -> QueueEntry:
        """Mark an entry served.

        Raises NotFoundError for an unknown id and AlreadyCompletedError when
        the entry was completed before (including by a concurrent caller).
        """
        duration = _require_int("actualDurationMinutes", actual_duration_minutes, minimum=0)

        entry = await self.store.complete_entry(entry_id, duration)
        if entry is None:
            if await self.store.get_entry(entry_id) is None:
                raise NotFoundError(entry_id)
            raise AlreadyCompletedError(entry_id)

        logger.info(f"Queue entry {entry_id} completed in {duration} min")
        await self.publish_snapshot()
        return entry

    # -------------------- reads --------------------

    async def current_snapshot(self, now: datetime | None = None) -> QueueSnapshot:
        now = now or datetime.now(UTC)
        count = await self.store.count_outstanding()
        return QueueSnapshot(
            count=count,
            estimated_wait=estimate_wait(count, self.minutes_per_customer),
            business_status=business_status(now, self.schedule),
            last_update=now,
        )

    async def outstanding_entries(self) -> list[QueueEntry]:
        return await self.store.get_outstanding_entries()

    async def publish_snapshot(self) -> QueueSnapshot | None:
        """Recompute the snapshot and fan it out.

        A failure here is logged, never raised: the write already happened and
        clients catch up on the next refresh.
        """
        try:
            snapshot = await self.current_snapshot()
            self.hub.broadcast_queue_update(snapshot)
            return snapshot
        except Exception as e:
            logger.exception(f"Failed to broadcast queue snapshot: {e}")
            return None

    # -------------------- analytics --------------------

    async def record_analytics_sample(
        self, now: datetime | None = None, *, overwrite: bool = True
    ) -> QueueAnalytics | None:
        """Store the queue length for the current business-timezone hour."""
        if self.analytics is None:
            return None

        local = local_time(now or datetime.now(UTC), self.schedule)
        if not overwrite and await self.analytics.has_sample(local.date(), local.hour):
            return None

        count = await self.store.count_outstanding()
        sample = await self.analytics.add_sample(
            local.date(),
            local.hour,
            local.weekday(),
            count,
            count * self.minutes_per_customer,
        )
        logger.debug(f"Recorded queue sample {local.date()} {local.hour:02d}h: {count}")
        return sample

    async def analytics_for(self, day: date) -> list[QueueAnalytics]:
        if self.analytics is None:
            return []
        return await self.analytics.get_for_date(day)

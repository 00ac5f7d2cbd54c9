"""Derived queue snapshot: count, wait estimate and business status."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .business_hours import BusinessStatus
from .protocol import BusinessStatusPayload, QueueStatusPayload, QueueUpdateMessage

DEFAULT_MINUTES_PER_CUSTOMER = 15
WAIT_RANGE_MINUTES = 5


def estimate_wait(count: int, minutes_per_customer: int = DEFAULT_MINUTES_PER_CUSTOMER) -> str:
    """Linear wait estimate rendered as a range, e.g. 3 -> '45-50 minutes'."""
    wait = max(count * minutes_per_customer, 0)
    if wait == 0:
        return "No wait"
    return f"{wait}-{wait + WAIT_RANGE_MINUTES} minutes"


@dataclass(frozen=True)
class QueueSnapshot:
    """Point-in-time view of the queue. Always derived, never stored."""

    count: int
    estimated_wait: str
    business_status: BusinessStatus
    last_update: datetime

    def to_payload(self) -> QueueStatusPayload:
        return QueueStatusPayload(
            count=self.count,
            estimated_wait=self.estimated_wait,
            business_status=BusinessStatusPayload.from_status(self.business_status),
            last_update=self.last_update,
        )

    def to_message(self) -> QueueUpdateMessage:
        return QueueUpdateMessage(**self.to_payload().model_dump())

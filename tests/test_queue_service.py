import asyncio
import random
import re
from datetime import UTC, date, datetime

import pytest

from walkin.api.services import BroadcastHub, QueueService
from walkin.shared.errors import AlreadyCompletedError, NotFoundError, ValidationError
from walkin.shared.repositories import MemoryQueueAnalyticsRepository, MemoryQueueEntryRepository
from walkin.shared.snapshot import estimate_wait


class BrokenHub(BroadcastHub):
    def broadcast_queue_update(self, snapshot):
        raise RuntimeError("fan-out exploded")


def make_service(hub=None, **kwargs) -> QueueService:
    return QueueService(
        MemoryQueueEntryRepository(),
        hub or BroadcastHub(),
        analytics=MemoryQueueAnalyticsRepository(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_enqueue_then_complete():
    service = make_service()
    entry = await service.enqueue("  Haircut ", 30)
    assert entry.service_type == "Haircut"
    assert entry.estimated_duration == 30
    assert not entry.is_completed
    assert (await service.current_snapshot()).count == 1

    done = await service.complete(entry.id, 25)
    assert done.is_completed
    assert done.actual_duration == 25
    assert done.completed_at is not None
    snapshot = await service.current_snapshot()
    assert snapshot.count == 0
    assert snapshot.estimated_wait == "No wait"


@pytest.mark.asyncio
async def test_count_matches_outstanding_entries_under_random_operations():
    rng = random.Random(1234)
    service = make_service()
    outstanding: set[int] = set()
    completed: set[int] = set()

    for _ in range(300):
        action = rng.random()
        if action < 0.5 or not (outstanding or completed):
            entry = await service.enqueue(rng.choice(["Cut", "Beard", "Color"]), rng.randint(1, 60))
            outstanding.add(entry.id)
        elif action < 0.85 and outstanding:
            entry_id = rng.choice(sorted(outstanding))
            await service.complete(entry_id, rng.randint(0, 90))
            outstanding.discard(entry_id)
            completed.add(entry_id)
        elif completed:
            with pytest.raises(AlreadyCompletedError):
                await service.complete(rng.choice(sorted(completed)), 5)

        snapshot = await service.current_snapshot()
        entries = await service.outstanding_entries()
        assert snapshot.count == len(outstanding) == len(entries)
        assert {e.id for e in entries} == outstanding


@pytest.mark.asyncio
async def test_racing_completes_produce_one_winner():
    service = make_service()
    entry = await service.enqueue("Cut", 20)

    results = await asyncio.gather(
        service.complete(entry.id, 10),
        service.complete(entry.id, 12),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], AlreadyCompletedError)

    stored = await service.store.get_entry(entry.id)
    assert stored.actual_duration == winners[0].actual_duration
    assert (await service.current_snapshot()).count == 0


@pytest.mark.asyncio
async def test_complete_unknown_entry():
    service = make_service()
    with pytest.raises(NotFoundError):
        await service.complete(999, 5)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "service_type, duration",
    [("", 10), ("   ", 10), (None, 10), ("Cut", 0), ("Cut", -5), ("Cut", True), ("Cut", "10"), ("Cut", 1.5)],
)
async def test_enqueue_validation(service_type, duration):
    service = make_service()
    with pytest.raises(ValidationError):
        await service.enqueue(service_type, duration)
    assert (await service.current_snapshot()).count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [-1, None, "5", 2.5, False])
async def test_complete_validation(duration):
    service = make_service()
    entry = await service.enqueue("Cut", 10)
    with pytest.raises(ValidationError):
        await service.complete(entry.id, duration)
    assert (await service.current_snapshot()).count == 1


def test_estimate_wait():
    assert estimate_wait(0) == "No wait"
    assert estimate_wait(-3) == "No wait"
    assert estimate_wait(1) == "15-20 minutes"
    assert estimate_wait(3) == "45-50 minutes"
    assert estimate_wait(2, 10) == "20-25 minutes"


def test_estimate_wait_is_monotone():
    def lower_bound(text: str) -> int:
        match = re.match(r"(\d+)-", text)
        return int(match.group(1)) if match else 0

    bounds = [lower_bound(estimate_wait(n)) for n in range(50)]
    assert bounds == sorted(bounds)


@pytest.mark.asyncio
async def test_mutations_broadcast_snapshot(fake_socket):
    hub = BroadcastHub()
    socket = fake_socket()
    hub.accept(socket)
    service = make_service(hub)

    entry = await service.enqueue("Cut", 15)
    await service.enqueue("Beard", 10)
    await service.complete(entry.id, 12)
    await hub.flush()

    counts = [f["count"] for f in socket.frames()]
    assert counts == [1, 2, 1]
    assert socket.frames()[-1]["estimatedWait"] == "15-20 minutes"
    await hub.close()


@pytest.mark.asyncio
async def test_broadcast_failure_does_not_reach_caller():
    service = make_service(BrokenHub())
    entry = await service.enqueue("Cut", 15)
    assert (await service.complete(entry.id, 10)).is_completed
    assert await service.publish_snapshot() is None


@pytest.mark.asyncio
async def test_snapshot_reports_business_status():
    service = make_service()
    monday_noon = datetime(2024, 1, 1, 11, 0, tzinfo=UTC)
    snapshot = await service.current_snapshot(monday_noon)
    assert snapshot.business_status.is_open
    assert snapshot.last_update == monday_noon


@pytest.mark.asyncio
async def test_analytics_samples_use_business_timezone():
    service = make_service()
    await service.enqueue("Cut", 15)
    await service.enqueue("Cut", 15)

    # 11:30 UTC is 12:30 in Amsterdam in January
    now = datetime(2024, 1, 1, 11, 30, tzinfo=UTC)
    sample = await service.record_analytics_sample(now)
    assert sample.hour == 12
    assert sample.day_of_week == 0
    assert sample.queue_length == 2
    assert sample.average_wait_time == 30

    await service.enqueue("Cut", 15)
    assert await service.record_analytics_sample(now, overwrite=False) is None
    refreshed = await service.record_analytics_sample(now)
    assert refreshed.queue_length == 3

    samples = await service.analytics_for(date(2024, 1, 1))
    assert [s.hour for s in samples] == [12]
    assert await service.analytics_for(date(2024, 1, 2)) == []


@pytest.mark.asyncio
async def test_analytics_disabled_without_store():
    service = QueueService(MemoryQueueEntryRepository(), BroadcastHub())
    assert await service.record_analytics_sample() is None
    assert await service.analytics_for(date(2024, 1, 1)) == []

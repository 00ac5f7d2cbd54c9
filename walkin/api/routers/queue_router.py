"""Walk-in queue API routes."""

import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from walkin.shared.errors import AlreadyCompletedError, NotFoundError, ValidationError
from walkin.shared.models import QueueEntry
from walkin.shared.protocol import QueueStatusPayload

from ..core.dependencies import get_queue_service, require_admin
from ..services import AdminPrincipal, QueueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/queue", tags=["queue"])


# ============================================
# Response / Request Models
# ============================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class QueueEntryResponse(_CamelModel):
    id: int
    service_type: str = Field(alias="serviceType")
    estimated_duration: int = Field(alias="estimatedDuration")
    actual_duration: int | None = Field(default=None, alias="actualDuration")
    is_completed: bool = Field(alias="isCompleted")
    created_at: datetime = Field(alias="createdAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    @classmethod
    def from_entry(cls, entry: QueueEntry) -> "QueueEntryResponse":
        return cls(
            id=entry.id,
            service_type=entry.service_type,
            estimated_duration=entry.estimated_duration,
            actual_duration=entry.actual_duration,
            is_completed=entry.is_completed,
            created_at=entry.created_at,
            completed_at=entry.completed_at,
        )


class EnqueueRequest(_CamelModel):
    # Type checks happen in the service so they surface as ValidationError
    service_type: Any = Field(
        default=None, validation_alias=AliasChoices("serviceType", "service_type")
    )
    estimated_duration_minutes: Any = Field(
        default=None,
        validation_alias=AliasChoices(
            "estimatedDurationMinutes", "estimatedDuration", "estimated_duration_minutes"
        ),
    )


class CompleteRequest(_CamelModel):
    actual_duration_minutes: Any = Field(
        default=None,
        validation_alias=AliasChoices(
            "actualDurationMinutes", "actualDuration", "actual_duration_minutes"
        ),
    )


class CompleteResponse(_CamelModel):
    success: bool
    entry: QueueEntryResponse


class AnalyticsSampleResponse(_CamelModel):
    hour: int
    day_of_week: int = Field(alias="dayOfWeek")
    queue_length: int = Field(alias="queueLength")
    average_wait_time: int = Field(alias="averageWaitTime")


# ============================================
# Public Endpoints
# ============================================


@router.get("/status", response_model=QueueStatusPayload, response_model_by_alias=True)
async def get_queue_status(
    service: QueueService = Depends(get_queue_service),
) -> QueueStatusPayload:
    """Current queue snapshot (polled by clients as a fallback to push)."""
    try:
        snapshot = await service.current_snapshot()
        return snapshot.to_payload()
    except Exception as e:
        logger.exception(f"Failed to fetch queue status: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch queue status") from None


# ============================================
# Admin Endpoints
# ============================================


@router.post("/add", response_model=QueueEntryResponse, response_model_by_alias=True)
async def add_queue_entry(
    body: EnqueueRequest,
    admin: AdminPrincipal = Depends(require_admin),
    service: QueueService = Depends(get_queue_service),
) -> QueueEntryResponse:
    """Add a walk-in customer and broadcast the new count."""
    try:
        entry = await service.enqueue(body.service_type, body.estimated_duration_minutes)  # type: ignore[arg-type]
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to add queue entry: {e}")
        raise HTTPException(status_code=500, detail="Failed to add queue entry") from None
    logger.info(f"Admin {admin.user_id} added queue entry {entry.id}")
    return QueueEntryResponse.from_entry(entry)


@router.post("/complete/{entry_id}", response_model=CompleteResponse, response_model_by_alias=True)
async def complete_queue_entry(
    entry_id: int,
    body: CompleteRequest,
    admin: AdminPrincipal = Depends(require_admin),
    service: QueueService = Depends(get_queue_service),
) -> CompleteResponse:
    """Mark an entry served and broadcast the new count."""
    try:
        entry = await service.complete(entry_id, body.actual_duration_minutes)  # type: ignore[arg-type]
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except AlreadyCompletedError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to complete queue entry: {e}")
        raise HTTPException(status_code=500, detail="Failed to complete queue entry") from None
    logger.info(f"Admin {admin.user_id} completed queue entry {entry_id}")
    return CompleteResponse(success=True, entry=QueueEntryResponse.from_entry(entry))


@router.get("/entries", response_model=list[QueueEntryResponse], response_model_by_alias=True)
async def list_outstanding_entries(
    _admin: AdminPrincipal = Depends(require_admin),
    service: QueueService = Depends(get_queue_service),
) -> list[QueueEntryResponse]:
    """Waiting customers, oldest first."""
    try:
        entries = await service.outstanding_entries()
        return [QueueEntryResponse.from_entry(e) for e in entries]
    except Exception as e:
        logger.exception(f"Failed to list queue entries: {e}")
        raise HTTPException(status_code=500, detail="Failed to list queue entries") from None


@router.get(
    "/analytics/{day}", response_model=list[AnalyticsSampleResponse], response_model_by_alias=True
)
async def get_queue_analytics(
    day: date,
    _admin: AdminPrincipal = Depends(require_admin),
    service: QueueService = Depends(get_queue_service),
) -> list[AnalyticsSampleResponse]:
    """Hourly queue samples for one day (business timezone)."""
    try:
        samples = await service.analytics_for(day)
        return [
            AnalyticsSampleResponse(
                hour=s.hour,
                day_of_week=s.day_of_week,
                queue_length=s.queue_length,
                average_wait_time=s.average_wait_time,
            )
            for s in samples
        ]
    except Exception as e:
        logger.exception(f"Failed to fetch queue analytics: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch queue analytics") from None

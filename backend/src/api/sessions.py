# pyright: reportMissingTypeStubs=false
"""
Session scheduling API endpoints.

Series creation, cascade reschedule, cancellation and session queries.
Domain errors raised by the services are turned into responses by the
exception handlers registered in main.py.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from api.responses import (
    RescheduleData, SeriesCreatedData, SessionResponse,
    envelope, serialize_sessions
)
from auth.dependencies import get_tenant_context
from auth.permissions import require_admin_tenant
from auth.tenant_context import TenantContext
from core.database import get_db
from core.exceptions import InvalidDatetimeError
from services.notification_trigger import DatabaseNotificationTrigger, NotificationTrigger
from services.session_series_service import SessionSeriesService
from services.session_store import SessionFilters
from utils.datetime_utils import parse_datetime_to_utc

logger = logging.getLogger(__name__)

router = APIRouter()


# ===== Request Models =====

class CreateSeriesRequest(BaseModel):
    """Request body for creating a session series."""
    model_config = ConfigDict(populate_by_name=True)

    # Required fields are checked by the service (missing_fields)
    patient_id: Optional[int] = Field(None, alias="patientId")
    therapist_id: Optional[int] = Field(None, alias="therapistId")
    start_time: Optional[str] = Field(None, alias="startTime", description="ISO-8601 start of the first session")
    periodicity: Optional[str] = Field(None, description="Weekly, BiWeekly or Monthly")
    duration_minutes: Optional[int] = Field(None, alias="durationMinutes")
    number_of_follow_ups: Optional[int] = Field(None, alias="numberOfFollowUps")
    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    """Request body for a cascade reschedule."""
    model_config = ConfigDict(populate_by_name=True)

    new_start_time: Optional[str] = Field(None, alias="newStartTime")


class UpdateSessionRequest(BaseModel):
    """Request body for editing one session."""
    status: Optional[str] = None
    therapist_id: Optional[int] = Field(None, validation_alias=AliasChoices("therapist_id", "therapistId"))
    notes: Optional[str] = None


# ===== Dependencies =====

def get_notification_trigger(db: Session = Depends(get_db)) -> NotificationTrigger:
    """Notification trigger writing to the request's database session."""
    return DatabaseNotificationTrigger(db)


def _parse_filter_time(name: str, value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return parse_datetime_to_utc(value)
    except ValueError:
        raise InvalidDatetimeError(f"Invalid {name}: {value}")


# ===== Endpoints =====

@router.post("/create-series", summary="Create a recurring session series", status_code=status.HTTP_201_CREATED)
async def create_session_series(
    request: CreateSeriesRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    notifier: NotificationTrigger = Depends(get_notification_trigger),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Create an anchor session and its follow-ups in one transaction."""
    result = SessionSeriesService.create_session_series(
        db,
        tenant,
        patient_id=request.patient_id,
        therapist_id=request.therapist_id,
        start_time=request.start_time,
        periodicity=request.periodicity,
        duration_minutes=request.duration_minutes,
        number_of_follow_ups=request.number_of_follow_ups,
        notes=request.notes,
        notifier=notifier
    )

    return envelope(
        message="Session series created successfully",
        data=SeriesCreatedData(
            anchorId=result.anchor_id,
            followUpSessionIds=result.follow_up_ids,
            totalSessions=result.total_sessions,
            periodicity=result.periodicity.value
        )
    )


@router.get("/", summary="List sessions")
async def list_sessions(
    patient_id: Optional[int] = Query(None),
    therapist_id: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, description="ISO-8601, inclusive lower bound on start_time"),
    end_date: Optional[str] = Query(None, description="ISO-8601, inclusive upper bound on start_time"),
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """List the clinic's sessions, newest first."""
    filters = SessionFilters(
        patient_id=patient_id,
        therapist_id=therapist_id,
        status=status_filter,
        start_date=_parse_filter_time("start_date", start_date),
        end_date=_parse_filter_time("end_date", end_date),
    )
    sessions = SessionSeriesService.get_sessions(db, tenant, filters)
    return envelope(count=len(sessions), data=serialize_sessions(sessions))


@router.get("/{session_id}", summary="Get one session")
async def get_session(
    session_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    session = SessionSeriesService.get_session_by_id(db, tenant, session_id)
    return envelope(data=SessionResponse.from_session(session))


@router.get("/{session_id}/series", summary="Get the series a session belongs to")
async def get_session_series(
    session_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Return anchor and follow-ups ordered by series_order."""
    series = SessionSeriesService.get_session_series(db, tenant, session_id)
    return envelope(count=len(series), data=serialize_sessions(series))


@router.put("/{session_id}", summary="Update status, therapist or notes of a session")
async def update_session(
    session_id: int,
    request: UpdateSessionRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    notifier: NotificationTrigger = Depends(get_notification_trigger),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    session = SessionSeriesService.update_session(
        db,
        tenant,
        session_id,
        status=request.status,
        therapist_id=request.therapist_id,
        notes=request.notes,
        notifier=notifier
    )
    return envelope(message="Session updated successfully", data=SessionResponse.from_session(session))


@router.put("/{session_id}/reschedule", summary="Reschedule a session and all later sessions of its series")
async def reschedule_session(
    session_id: int,
    request: RescheduleRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    notifier: NotificationTrigger = Depends(get_notification_trigger),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Shift the session and every later session of the series by the same delta."""
    result = SessionSeriesService.reschedule_session(
        db, tenant, session_id, request.new_start_time, notifier=notifier
    )
    return envelope(
        message="Session rescheduled successfully",
        data=RescheduleData(
            updatedSessions=result.updated_count,
            timeDelta=result.delta_minutes,
            affectedSessionIds=result.affected_session_ids
        )
    )


@router.put("/{session_id}/cancel", summary="Cancel one session")
async def cancel_session(
    session_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    notifier: NotificationTrigger = Depends(get_notification_trigger),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    changed = SessionSeriesService.cancel_session(db, tenant, session_id, notifier=notifier)
    message = "Session cancelled successfully" if changed else "Session was already cancelled"
    return envelope(message=message)


@router.put("/{session_id}/cancel-series", summary="Cancel every session of a series")
async def cancel_session_series(
    session_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    notifier: NotificationTrigger = Depends(get_notification_trigger),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    cancelled = SessionSeriesService.cancel_session_series(db, tenant, session_id, notifier=notifier)
    return envelope(
        message="Session series cancelled successfully",
        data={"cancelledSessions": cancelled}
    )


@router.delete("/{session_id}/series", summary="Delete a whole series (admin only)")
async def delete_session_series(
    session_id: int,
    tenant: TenantContext = Depends(require_admin_tenant()),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Physically remove a series and its notifications."""
    deleted = SessionSeriesService.delete_session_series(db, tenant, session_id)
    return envelope(
        message="Session series deleted successfully",
        data={"deletedSessions": deleted}
    )

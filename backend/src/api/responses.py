"""
Shared response models for API endpoints.

Every endpoint answers with the envelope
``{"success": bool, "message"?: str, "count"?: int, "data"?: ...}``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_serializer

from models import TherapySession
from utils.datetime_utils import format_iso_utc


class SessionResponse(BaseModel):
    """Response model for one therapy session."""
    id: int
    clinic_id: int
    patient_id: int
    therapist_id: int
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    periodicity: str
    is_follow_up: bool
    parent_session_id: Optional[int] = None  # None for the anchor of a series
    series_order: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    patient_name: Optional[str] = None
    therapist_name: Optional[str] = None

    @field_serializer('start_time', 'end_time', 'created_at', 'updated_at')
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_iso_utc(value)

    @classmethod
    def from_session(cls, session: TherapySession) -> "SessionResponse":
        return cls(
            id=session.id,
            clinic_id=session.clinic_id,
            patient_id=session.patient_id,
            therapist_id=session.therapist_id,
            start_time=session.start_time,
            end_time=session.end_time,
            duration_minutes=session.duration_minutes,
            status=session.status,
            periodicity=session.periodicity,
            is_follow_up=session.is_follow_up,
            parent_session_id=session.parent_session_id,
            series_order=session.series_order,
            notes=session.notes,
            created_at=session.created_at,
            updated_at=session.updated_at,
            patient_name=session.patient.full_name if session.patient else None,
            therapist_name=session.therapist.full_name if session.therapist else None,
        )


class SeriesCreatedData(BaseModel):
    """Payload of a successful series creation."""
    anchorId: int
    followUpSessionIds: List[int]
    totalSessions: int
    periodicity: str


class RescheduleData(BaseModel):
    """Payload of a successful cascade reschedule."""
    updatedSessions: int
    timeDelta: float  # Minutes, may be fractional
    affectedSessionIds: List[int]


def serialize_sessions(sessions: List[TherapySession]) -> List[Dict[str, Any]]:
    """Serialize sessions to JSON-ready dicts."""
    return [SessionResponse.from_session(s).model_dump(mode="json") for s in sessions]


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    count: Optional[int] = None,
    success: bool = True
) -> Dict[str, Any]:
    """Build the response envelope, omitting empty keys."""
    body: Dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data.model_dump(mode="json") if isinstance(data, BaseModel) else data
    return body


def error_body(message: str, error_code: str) -> Dict[str, Any]:
    """Envelope for failed requests."""
    return {"success": False, "message": message, "error_code": error_code}

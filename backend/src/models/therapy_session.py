"""
TherapySession model representing one scheduled occurrence of treatment.

Sessions are created in series: one anchor session (series_order 0, no
parent) plus N follow-ups (series_order 1..N) whose parent_session_id points
at the anchor. A series has a fixed size once created; it can only be moved
forward by a cascading reschedule or cancelled as a whole. Sessions are never
deleted in normal operation - cancellation is a status change.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import String, Text, Integer, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime
from core.constants import DEFAULT_SESSION_DURATION_MINUTES


class TherapySession(Base):
    """
    A single therapy session between a patient and a therapist.

    Series linkage invariants:
    - exactly one session per series has series_order 0 and no parent (the anchor)
    - follow-ups share parent_session_id = anchor.id with contiguous series_order 1..N
    - is_follow_up is True iff series_order > 0
    """

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Store-assigned identifier."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Tenant of the session. Immutable after creation."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    therapist_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """Assigned therapist (a clinic admin or staff user of the same clinic)."""

    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    """Absolute start timestamp (UTC)."""

    duration_minutes: Mapped[int] = mapped_column(Integer, default=DEFAULT_SESSION_DURATION_MINUTES, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="scheduled", nullable=False)  # 'scheduled', 'completed', 'cancelled'
    """Current status. Valid values: 'scheduled', 'completed', 'cancelled'."""

    periodicity: Mapped[str] = mapped_column(String(20), default="None", nullable=False)
    """
    Recurrence label copied onto every session of the series for display.

    Valid values: 'Weekly', 'BiWeekly', 'Monthly', 'None'. Not re-derived
    from actual spacing, which may drift after reschedules.
    """

    is_follow_up: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    parent_session_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sessions.id"), nullable=True)
    """Anchor session id for follow-ups; NULL for the anchor itself."""

    series_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    """0 for the anchor, 1..N for follow-ups. Defines chronological and cascade order."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="sessions")
    patient = relationship("Patient", back_populates="therapy_sessions")
    therapist = relationship("User", back_populates="therapy_sessions")

    __table_args__ = (
        Index('idx_sessions_clinic_start_time', 'clinic_id', 'start_time'),
        Index('idx_sessions_parent', 'parent_session_id'),
        Index('idx_sessions_patient', 'patient_id'),
        Index('idx_sessions_therapist', 'therapist_id'),
        Index('idx_sessions_status', 'status'),
    )

    @property
    def anchor_id(self) -> int:
        """Id of the series anchor this session belongs to."""
        if self.is_follow_up and self.parent_session_id is not None:
            return self.parent_session_id
        return self.id

    @property
    def end_time(self) -> datetime:
        """Start time plus duration."""
        return self.start_time + timedelta(minutes=self.duration_minutes)

    def __repr__(self) -> str:
        return (
            f"TherapySession(id={self.id}, clinic_id={self.clinic_id}, "
            f"series_order={self.series_order}, status='{self.status}')"
        )

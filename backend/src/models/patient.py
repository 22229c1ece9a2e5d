"""
Patient model representing individuals who receive treatment at clinics.

Each patient belongs to exactly one clinic. Sessions may only be scheduled
for patients of the requesting clinic.
"""

from sqlalchemy import String, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from core.database import Base, UTCDateTime


class Patient(Base):
    """
    Patient entity representing an individual who receives treatment at a clinic.

    Contact details (email, phone) are used as recipients of session
    reminders, rescheduling and cancellation notifications.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Reference to the clinic where this patient receives treatment."""

    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Contact email. Rescheduling and cancellation notices are only sent when set."""

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Contact phone number, used for SMS reminders."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    """Timestamp when the patient was first created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # Soft delete support
    is_deleted: Mapped[bool] = mapped_column(default=False)
    """Soft delete flag. Deleted patients cannot be scheduled."""

    # Relationships
    clinic = relationship("Clinic", back_populates="patients")
    """Relationship to the Clinic entity where this patient receives treatment."""

    therapy_sessions = relationship("TherapySession", back_populates="patient")
    """All sessions scheduled for this patient."""

    __table_args__ = (
        Index('idx_patients_clinic', 'clinic_id'),
    )

    @property
    def full_name(self) -> str:
        """First and last name joined with a space."""
        return f"{self.first_name} {self.last_name}".strip()

"""
User model for clinic personnel.

All clinic personnel (clinic admins, staff) and system administrators are
stored in this single table. Only clinic admins and staff can be assigned as
the therapist of a session.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime
from core.constants import MAX_STRING_LENGTH


class User(Base):
    """Clinic personnel and system administrators."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[Optional[int]] = mapped_column(ForeignKey("clinics.id"), nullable=True)
    """Clinic the user works at. NULL for system admins."""

    email: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), unique=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))

    role: Mapped[str] = mapped_column(String(50))  # 'system_admin', 'clinic_admin', 'staff'
    """Access role. Valid values: 'system_admin', 'clinic_admin', 'staff'."""

    job_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Free-form job title, e.g. 'Physical Therapist' or 'Receptionist'."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="users")
    therapy_sessions = relationship("TherapySession", back_populates="therapist")
    """Sessions this user is assigned to as therapist."""

    __table_args__ = (
        Index('idx_users_clinic_role', 'clinic_id', 'role'),
    )

    @property
    def full_name(self) -> str:
        """First and last name joined with a space."""
        return f"{self.first_name} {self.last_name}".strip()

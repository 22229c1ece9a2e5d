"""
Clinic model representing a physical therapy clinic.

A clinic is the tenant boundary of the system: it owns its staff, patients,
therapy sessions and notification settings. Every session query is filtered
by the clinic of the requesting user.
"""

from datetime import datetime

from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime
from core.constants import MAX_STRING_LENGTH


class Clinic(Base):
    """
    Physical therapy clinic entity.

    Each clinic operates independently; data never crosses clinic boundaries
    except for system administrators.
    """

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the clinic."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Human-readable name of the clinic."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Deactivated clinics keep their data but cannot be used."""

    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)
    """IANA timezone label used for display. Session times are stored in UTC."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    """Timestamp when the clinic was created."""

    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    """Timestamp when the clinic was last updated."""

    # Relationships
    users = relationship("User", back_populates="clinic")
    """Staff members (clinic admins and staff) of this clinic."""

    patients = relationship("Patient", back_populates="clinic")
    """Patients treated at this clinic."""

    sessions = relationship("TherapySession", back_populates="clinic")
    """All therapy sessions scheduled at this clinic."""

    notification_settings = relationship(
        "NotificationSetting",
        back_populates="clinic",
        cascade="all, delete-orphan"
    )
    """Notification configuration (reminder timing, channels, templates)."""

"""
Per-clinic notification settings.

Each row configures one notification type for a clinic, e.g. "send an
appointment reminder 24 hours before by email and SMS".
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Text, Integer, Boolean, ForeignKey, UniqueConstraint, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime


class NotificationSetting(Base):
    """Clinic-level configuration for one notification type."""

    __tablename__ = "notification_settings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))

    notification_type: Mapped[str] = mapped_column(String(50))  # 'appointment_reminder'

    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    timing_hours: Mapped[int] = mapped_column(Integer, default=24, nullable=False)
    """How many hours before the session start a reminder is sent."""

    channels: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    """Delivery channels, e.g. ["email", "sms"]."""

    template: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """
    Message template with {{placeholder}} substitution.

    Available placeholders: patient_name, appointment_date, appointment_time,
    therapist_name, hours_before. NULL uses the built-in default text.
    """

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    clinic = relationship("Clinic", back_populates="notification_settings")

    __table_args__ = (
        UniqueConstraint('clinic_id', 'notification_type', 'timing_hours', name='uq_notification_setting'),
    )

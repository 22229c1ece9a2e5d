"""
Notification model for patient-facing messages about sessions.

Notifications are written by the notification service (reminders,
rescheduling and cancellation notices) and picked up by the dispatch job.
Delivery itself is stubbed: the dispatcher logs the message and marks it sent.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, Text, Integer, ForeignKey, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, UTCDateTime


class Notification(Base):
    """A single message to one recipient over one channel."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))

    recipient_type: Mapped[str] = mapped_column(String(20))  # 'patient', 'staff'
    recipient_id: Mapped[int] = mapped_column(Integer)

    notification_type: Mapped[str] = mapped_column(String(50))
    """'appointment_reminder', 'rescheduling' or 'cancellation'."""

    channel: Mapped[str] = mapped_column(String(20))  # 'email', 'sms'

    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text)

    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    """When the message becomes due for delivery."""

    sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    """'pending', 'sent', 'failed' or 'cancelled'."""

    related_session_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sessions.id"), nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    extra_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    """Delivery details captured at creation time (patient email/phone)."""

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    related_session = relationship("TherapySession")

    __table_args__ = (
        Index('idx_notifications_status_scheduled', 'status', 'scheduled_for'),
        Index('idx_notifications_session_status', 'related_session_id', 'status'),
    )

"""
Notification service for session reminders and patient notices.

Reminders are pre-scheduled as pending rows in the notifications table when
sessions are created or moved. Rescheduling and cancellation notices are
queued for immediate delivery. The dispatch job later picks up due rows and
delivers them; delivery is simulated and only logged.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from auth.tenant_context import TenantContext
from core.constants import DEFAULT_NOTIFICATION_CHANNEL, NOTIFICATION_DISPATCH_BATCH_SIZE
from models import Notification, NotificationSetting, Patient, TherapySession
from services.patient_service import PatientService
from services.session_store import SessionStore
from utils.datetime_utils import utc_now, ensure_utc, format_datetime
from utils.session_status import SessionStatus

logger = logging.getLogger(__name__)


NOTIFICATION_TYPE_REMINDER = 'appointment_reminder'
NOTIFICATION_TYPE_RESCHEDULING = 'rescheduling'
NOTIFICATION_TYPE_CANCELLATION = 'cancellation'

STATUS_PENDING = 'pending'
STATUS_SENT = 'sent'
STATUS_FAILED = 'failed'
STATUS_CANCELLED = 'cancelled'

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

# Settings created for a clinic that has none yet
DEFAULT_REMINDER_SETTINGS: List[Dict[str, Any]] = [
    {
        'timing_hours': 24,
        'channels': ['email'],
        'template': 'Hi {{patient_name}}, this is a reminder that you have an appointment tomorrow at {{appointment_time}}.',
    },
    {
        'timing_hours': 48,
        'channels': ['email'],
        'template': 'Hi {{patient_name}}, you have an appointment in 2 days on {{appointment_date}} at {{appointment_time}}.',
    },
]


class NotificationDeliveryError(Exception):
    """A notification could not be handed to its channel."""


@dataclass
class DispatchSummary:
    """Outcome of one dispatch pass."""

    sent: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.failed


def _contact_details(patient: Patient) -> Dict[str, Any]:
    return {
        'patient_email': patient.email,
        'patient_phone': patient.phone,
    }


def _load_session_and_patient(
    db: Session,
    session_id: int,
    clinic_id: int
) -> Tuple[Optional[TherapySession], Optional[Patient]]:
    tenant = TenantContext.for_clinic(clinic_id)
    session = SessionStore.find_by_id(db, session_id, tenant)
    if session is None:
        return None, None
    return session, PatientService.find_patient(db, session.patient_id, tenant)


def deliver_notification(notification: Notification) -> None:
    """
    Simulated delivery: log what would be sent.

    Raises:
        NotificationDeliveryError: If the recipient has no address for the channel
    """
    extra = notification.extra_data or {}
    if notification.channel == 'email':
        address = extra.get('patient_email')
    elif notification.channel == 'sms':
        address = extra.get('patient_phone')
    else:
        raise NotificationDeliveryError(f"Unsupported channel '{notification.channel}'")

    if not address:
        raise NotificationDeliveryError(
            f"No {notification.channel} address for {notification.recipient_type} {notification.recipient_id}"
        )

    logger.info(
        f"[SIMULATED] Sending {notification.channel} notification {notification.id} "
        f"to {address}: {notification.subject} - {notification.message}"
    )


class NotificationService:
    """Service for creating, cancelling and dispatching notifications."""

    @staticmethod
    def build_reminder_message(template: Optional[str], data: Dict[str, Any]) -> str:
        """
        Render a reminder message.

        Without a template a default English text is used. Otherwise every
        ``{{key}}`` placeholder is replaced by ``data[key]``; unknown
        placeholders are left as they are.
        """
        if not template:
            return (
                f"Hi {data.get('patient_name')}, this is a reminder that you have an appointment "
                f"on {data.get('appointment_date')} at {data.get('appointment_time')} "
                f"with {data.get('therapist_name')}."
            )

        def replace(match: "re.Match[str]") -> str:
            key = match.group(1)
            if key in data:
                return str(data[key])
            return match.group(0)

        return _PLACEHOLDER_PATTERN.sub(replace, template)

    @staticmethod
    def get_reminder_settings(db: Session, clinic_id: int) -> List[NotificationSetting]:
        """Enabled appointment reminder settings of a clinic."""
        return db.query(NotificationSetting).filter(
            NotificationSetting.clinic_id == clinic_id,
            NotificationSetting.notification_type == NOTIFICATION_TYPE_REMINDER,
            NotificationSetting.enabled == True  # noqa: E712
        ).order_by(NotificationSetting.timing_hours.asc()).all()

    @staticmethod
    def initialize_clinic_notifications(db: Session, clinic_id: int) -> List[NotificationSetting]:
        """
        Create the default reminder settings (24h and 48h by email) for a clinic.

        Existing settings with the same timing are left untouched.
        """
        existing = {
            s.timing_hours for s in db.query(NotificationSetting).filter(
                NotificationSetting.clinic_id == clinic_id,
                NotificationSetting.notification_type == NOTIFICATION_TYPE_REMINDER
            ).all()
        }

        created: List[NotificationSetting] = []
        for default in DEFAULT_REMINDER_SETTINGS:
            if default['timing_hours'] in existing:
                continue
            setting = NotificationSetting(
                clinic_id=clinic_id,
                notification_type=NOTIFICATION_TYPE_REMINDER,
                enabled=True,
                timing_hours=default['timing_hours'],
                channels=list(default['channels']),
                template=default['template'],
            )
            db.add(setting)
            created.append(setting)

        db.commit()
        logger.info(f"Initialized {len(created)} notification settings for clinic {clinic_id}")
        return created

    @staticmethod
    def create_session_reminders(db: Session, session_id: int, clinic_id: int) -> int:
        """
        Schedule pending reminders for one session.

        One reminder is created per enabled reminder setting and channel, due
        ``timing_hours`` before the session starts. Reminders whose due time
        has already passed are skipped, as are sessions that are no longer
        scheduled.

        Returns:
            Number of reminders created
        """
        settings = NotificationService.get_reminder_settings(db, clinic_id)
        if not settings:
            logger.debug(f"No reminder settings for clinic {clinic_id}")
            return 0

        session, patient = _load_session_and_patient(db, session_id, clinic_id)
        if session is None or patient is None:
            logger.debug(f"Session {session_id} or its patient not found, skipping reminders")
            return 0

        if session.status != SessionStatus.SCHEDULED.value:
            return 0

        start_time = ensure_utc(session.start_time)
        if start_time is None:
            raise ValueError(f"Session {session_id} has no start time")
        now = utc_now()
        therapist_name = session.therapist.full_name if session.therapist else 'your therapist'

        created = 0
        for setting in settings:
            scheduled_for = start_time - timedelta(hours=setting.timing_hours)
            if scheduled_for <= now:
                continue

            message = NotificationService.build_reminder_message(setting.template, {
                'patient_name': patient.full_name,
                'appointment_date': start_time.strftime('%Y-%m-%d'),
                'appointment_time': start_time.strftime('%H:%M'),
                'therapist_name': therapist_name,
                'hours_before': setting.timing_hours,
            })

            for channel in setting.channels or [DEFAULT_NOTIFICATION_CHANNEL]:
                db.add(Notification(
                    clinic_id=clinic_id,
                    recipient_type='patient',
                    recipient_id=patient.id,
                    notification_type=NOTIFICATION_TYPE_REMINDER,
                    channel=channel,
                    subject='Appointment Reminder',
                    message=message,
                    scheduled_for=scheduled_for,
                    status=STATUS_PENDING,
                    related_session_id=session.id,
                    extra_data=_contact_details(patient),
                ))
                created += 1

        db.commit()
        logger.debug(f"Created {created} reminders for session {session_id}")
        return created

    @staticmethod
    def create_series_reminders(db: Session, session_ids: Sequence[int], clinic_id: int) -> int:
        """Schedule reminders for every session of a newly created series."""
        total = 0
        for session_id in session_ids:
            total += NotificationService.create_session_reminders(db, session_id, clinic_id)
        logger.info(f"Created {total} reminders for {len(session_ids)} sessions in clinic {clinic_id}")
        return total

    @staticmethod
    def cancel_session_notifications(
        db: Session,
        session_id: int,
        notification_type: Optional[str] = None
    ) -> int:
        """
        Mark pending notifications of a session as cancelled.

        Args:
            notification_type: Restrict to one type (e.g. reminders only)

        Returns:
            Number of notifications cancelled
        """
        query = db.query(Notification).filter(
            Notification.related_session_id == session_id,
            Notification.status == STATUS_PENDING
        )
        if notification_type:
            query = query.filter(Notification.notification_type == notification_type)

        count = query.update({Notification.status: STATUS_CANCELLED}, synchronize_session="fetch")
        db.commit()
        return count

    @staticmethod
    def send_rescheduling_notification(
        db: Session,
        session_id: int,
        clinic_id: int,
        old_time: datetime,
        new_time: datetime
    ) -> Optional[Notification]:
        """
        Queue an email telling the patient their session moved.

        Returns:
            The notification, or None if the patient has no email address
        """
        session, patient = _load_session_and_patient(db, session_id, clinic_id)
        if session is None or patient is None or not patient.email:
            return None

        notification = Notification(
            clinic_id=clinic_id,
            recipient_type='patient',
            recipient_id=patient.id,
            notification_type=NOTIFICATION_TYPE_RESCHEDULING,
            channel='email',
            subject='Appointment Rescheduled',
            message=(
                f"Your appointment has been rescheduled from {format_datetime(old_time)} "
                f"to {format_datetime(new_time)}."
            ),
            scheduled_for=utc_now(),
            status=STATUS_PENDING,
            related_session_id=session.id,
            extra_data=_contact_details(patient),
        )
        db.add(notification)
        db.commit()
        return notification

    @staticmethod
    def send_cancellation_notification(db: Session, session_id: int, clinic_id: int) -> Optional[Notification]:
        """
        Cancel the session's pending reminders and queue a cancellation email.

        Returns:
            The cancellation notification, or None if the patient has no email address
        """
        session, patient = _load_session_and_patient(db, session_id, clinic_id)
        if session is None or patient is None:
            return None

        NotificationService.cancel_session_notifications(db, session_id, NOTIFICATION_TYPE_REMINDER)

        if not patient.email:
            return None

        notification = Notification(
            clinic_id=clinic_id,
            recipient_type='patient',
            recipient_id=patient.id,
            notification_type=NOTIFICATION_TYPE_CANCELLATION,
            channel='email',
            subject='Appointment Cancelled',
            message=f"Your appointment on {format_datetime(session.start_time)} has been cancelled.",
            scheduled_for=utc_now(),
            status=STATUS_PENDING,
            related_session_id=session.id,
            extra_data=_contact_details(patient),
        )
        db.add(notification)
        db.commit()
        return notification

    @staticmethod
    def find_due_notifications(db: Session, now: Optional[datetime] = None, limit: int = NOTIFICATION_DISPATCH_BATCH_SIZE) -> List[Notification]:
        """Pending notifications whose scheduled time has passed, oldest first."""
        now = now or utc_now()
        return db.query(Notification).filter(
            Notification.status == STATUS_PENDING,
            Notification.scheduled_for <= now
        ).order_by(Notification.scheduled_for.asc(), Notification.id.asc()).limit(limit).all()

    @staticmethod
    def process_pending_notifications(
        db: Session,
        now: Optional[datetime] = None,
        deliver: Callable[[Notification], None] = deliver_notification
    ) -> DispatchSummary:
        """
        Deliver due notifications.

        Each notification is committed on its own, so one failed delivery
        never affects the others. Failures are recorded on the row.
        """
        summary = DispatchSummary()
        due = NotificationService.find_due_notifications(db, now)
        logger.info(f"Processing {len(due)} pending notifications")

        for notification in due:
            try:
                deliver(notification)
                notification.status = STATUS_SENT
                notification.sent_at = utc_now()
                notification.error_message = None
                summary.sent += 1
            except Exception as e:
                logger.warning(f"Failed to send notification {notification.id}: {e}")
                notification.status = STATUS_FAILED
                notification.error_message = str(e)
                summary.failed += 1
            db.commit()

        if summary.processed:
            logger.info(f"Notification dispatch finished: {summary.sent} sent, {summary.failed} failed")
        return summary

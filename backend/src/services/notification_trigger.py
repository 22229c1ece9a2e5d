"""
Hooks fired after session changes are committed.

The series service only knows the NotificationTrigger protocol. The API layer
injects DatabaseNotificationTrigger; tests inject mocks. Implementations must
never raise: a failed notification is logged and the committed schedule stands.
"""

import logging
from datetime import datetime
from typing import Protocol, Sequence

from sqlalchemy.orm import Session

from services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class NotificationTrigger(Protocol):
    """Callbacks for committed session changes."""

    def on_series_created(self, session_ids: Sequence[int], clinic_id: int) -> None:
        ...

    def on_rescheduled(self, session_id: int, clinic_id: int, old_time: datetime, new_time: datetime) -> None:
        ...

    def on_cancelled(self, session_id: int, clinic_id: int) -> None:
        ...


class DatabaseNotificationTrigger:
    """
    Writes reminders and notices to the notifications table.

    Uses the request's database session after the scheduling transaction has
    committed, with its own commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def _rollback_quietly(self) -> None:
        try:
            self.db.rollback()
        except Exception:
            logger.exception("Rollback after notification failure also failed")

    def on_series_created(self, session_ids: Sequence[int], clinic_id: int) -> None:
        try:
            NotificationService.create_series_reminders(self.db, session_ids, clinic_id)
        except Exception as e:
            logger.exception(f"Failed to create reminders for sessions {list(session_ids)}: {e}")
            self._rollback_quietly()

    def on_rescheduled(self, session_id: int, clinic_id: int, old_time: datetime, new_time: datetime) -> None:
        try:
            NotificationService.cancel_session_notifications(self.db, session_id)
            NotificationService.send_rescheduling_notification(self.db, session_id, clinic_id, old_time, new_time)
            NotificationService.create_session_reminders(self.db, session_id, clinic_id)
        except Exception as e:
            logger.exception(f"Failed to send rescheduling notifications for session {session_id}: {e}")
            self._rollback_quietly()

    def on_cancelled(self, session_id: int, clinic_id: int) -> None:
        try:
            NotificationService.send_cancellation_notification(self.db, session_id, clinic_id)
        except Exception as e:
            logger.exception(f"Failed to send cancellation notification for session {session_id}: {e}")
            self._rollback_quietly()


class LoggingNotificationTrigger:
    """Trigger that only logs. Used where no notification storage is wanted."""

    def on_series_created(self, session_ids: Sequence[int], clinic_id: int) -> None:
        logger.info(f"Series created in clinic {clinic_id}: sessions {list(session_ids)}")

    def on_rescheduled(self, session_id: int, clinic_id: int, old_time: datetime, new_time: datetime) -> None:
        logger.info(f"Session {session_id} in clinic {clinic_id} moved from {old_time.isoformat()} to {new_time.isoformat()}")

    def on_cancelled(self, session_id: int, clinic_id: int) -> None:
        logger.info(f"Session {session_id} in clinic {clinic_id} cancelled")

"""
Notification dispatch scheduler.

Runs hourly and delivers every pending notification that is due. Only
started when ENABLE_NOTIFICATION_SCHEDULER is set.
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.cron import CronTrigger  # type: ignore

from core.constants import NOTIFICATION_SCHEDULER_MAX_INSTANCES
from core.database import get_db_context
from services.notification_service import NotificationService, DispatchSummary

logger = logging.getLogger(__name__)


class NotificationDispatchScheduler:
    """
    Scheduler for delivering queued notifications (reminders, rescheduling
    and cancellation notices) via an hourly cron job.
    """

    def __init__(self):
        """
        Database sessions are created fresh for each run. Do not pass a session here.
        """
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._is_started = False

    @property
    def is_started(self) -> bool:
        return self._is_started

    async def start_scheduler(self) -> None:
        """Start the background job. Called during application startup."""
        if self._is_started:
            logger.warning("Notification dispatch scheduler is already started")
            return

        self.scheduler.add_job(  # type: ignore
            self._dispatch_pending_notifications,
            CronTrigger(minute=0),  # Top of every hour
            id="dispatch_pending_notifications",
            name="Dispatch pending notifications",
            max_instances=NOTIFICATION_SCHEDULER_MAX_INSTANCES,
            replace_existing=True
        )

        self.scheduler.start()
        self._is_started = True
        logger.info("Notification dispatch scheduler started")

        # Catch up on anything that became due while the app was down
        await self._dispatch_pending_notifications()

    async def stop_scheduler(self) -> None:
        """Stop the background job. Called during application shutdown."""
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Notification dispatch scheduler stopped")

    async def _dispatch_pending_notifications(self) -> Optional[DispatchSummary]:
        """Deliver due notifications using a fresh database session."""
        try:
            with get_db_context() as db:
                return NotificationService.process_pending_notifications(db)
        except Exception as e:
            logger.exception(f"Error dispatching pending notifications: {e}")
            return None


# Global scheduler instance
_notification_dispatch_scheduler: Optional[NotificationDispatchScheduler] = None


def get_notification_dispatch_scheduler() -> NotificationDispatchScheduler:
    """Get the global notification dispatch scheduler instance."""
    global _notification_dispatch_scheduler
    if _notification_dispatch_scheduler is None:
        _notification_dispatch_scheduler = NotificationDispatchScheduler()
    return _notification_dispatch_scheduler


async def start_notification_dispatch_scheduler() -> None:
    """Start the global notification dispatch scheduler."""
    scheduler = get_notification_dispatch_scheduler()
    await scheduler.start_scheduler()


async def stop_notification_dispatch_scheduler() -> None:
    """Stop the global notification dispatch scheduler."""
    global _notification_dispatch_scheduler
    if _notification_dispatch_scheduler:
        await _notification_dispatch_scheduler.stop_scheduler()

"""
Unit tests for the hourly notification dispatch job.
"""

import pytest
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from models import Notification
from services import notification_dispatch_scheduler as dispatch
from services.notification_service import NotificationService
from services.session_series_service import SessionSeriesService


@pytest.mark.asyncio
async def test_dispatch_job_delivers_due_notifications(db_session, tenant, patient, therapist, clinic):
    result = SessionSeriesService.create_session_series(
        db_session, tenant,
        patient_id=patient.id,
        therapist_id=therapist.id,
        start_time=datetime.now(timezone.utc) + timedelta(days=3),
        periodicity="Weekly",
        number_of_follow_ups=1,
    )
    now = datetime.now(timezone.utc) - timedelta(minutes=1)
    NotificationService.send_rescheduling_notification(db_session, result.anchor_id, clinic.id, now, now)

    @contextmanager
    def test_db_context():
        yield db_session

    with patch.object(dispatch, "get_db_context", test_db_context):
        summary = await dispatch.NotificationDispatchScheduler()._dispatch_pending_notifications()

    assert summary.sent == 1
    assert db_session.query(Notification).one().status == "sent"


@pytest.mark.asyncio
async def test_dispatch_job_logs_failures(caplog):
    @contextmanager
    def broken_db_context():
        raise RuntimeError("database unavailable")
        yield

    with patch.object(dispatch, "get_db_context", broken_db_context):
        summary = await dispatch.NotificationDispatchScheduler()._dispatch_pending_notifications()

    assert summary is None
    assert "database unavailable" in caplog.text


def test_global_scheduler_is_shared():
    assert dispatch.get_notification_dispatch_scheduler() is dispatch.get_notification_dispatch_scheduler()
    assert not dispatch.get_notification_dispatch_scheduler().is_started

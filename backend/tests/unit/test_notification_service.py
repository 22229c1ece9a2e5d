"""
Unit tests for reminder scheduling, patient notices and notification dispatch.
"""

import pytest
from datetime import datetime, timedelta, timezone

from models import Notification, NotificationSetting
from services.notification_service import (
    DEFAULT_REMINDER_SETTINGS, NotificationDeliveryError, NotificationService,
    deliver_notification
)
from services.session_series_service import SessionSeriesService


@pytest.fixture
def make_series(db_session, tenant, patient, therapist, future_start):
    def _make(start=None, follow_ups=1, patient_id=None):
        return SessionSeriesService.create_session_series(
            db_session, tenant,
            patient_id=patient_id or patient.id,
            therapist_id=therapist.id,
            start_time=start or future_start,
            periodicity="Weekly",
            number_of_follow_ups=follow_ups,
        )
    return _make


def _notifications(db_session, session_id=None, notification_type=None):
    query = db_session.query(Notification)
    if session_id is not None:
        query = query.filter(Notification.related_session_id == session_id)
    if notification_type is not None:
        query = query.filter(Notification.notification_type == notification_type)
    return query.order_by(Notification.id).all()


class TestBuildReminderMessage:

    def test_default_text(self):
        message = NotificationService.build_reminder_message(None, {
            'patient_name': 'Pat Patient',
            'appointment_date': '2025-10-25',
            'appointment_time': '10:00',
            'therapist_name': 'Terry Therapist',
        })
        assert message == (
            "Hi Pat Patient, this is a reminder that you have an appointment "
            "on 2025-10-25 at 10:00 with Terry Therapist."
        )

    def test_template_substitution_keeps_unknown_placeholders(self):
        message = NotificationService.build_reminder_message(
            "{{ patient_name }} at {{appointment_time}} in {{room}}",
            {'patient_name': 'Pat', 'appointment_time': '09:30'}
        )
        assert message == "Pat at 09:30 in {{room}}"


class TestReminderSettings:

    def test_initialize_is_idempotent(self, db_session, clinic, make_reminder_setting):
        make_reminder_setting(clinic, timing_hours=24)

        created = NotificationService.initialize_clinic_notifications(db_session, clinic.id)

        assert [s.timing_hours for s in created] == [48]
        assert NotificationService.initialize_clinic_notifications(db_session, clinic.id) == []
        total = db_session.query(NotificationSetting).filter(NotificationSetting.clinic_id == clinic.id).count()
        assert total == len(DEFAULT_REMINDER_SETTINGS)

    def test_only_enabled_settings_are_returned(self, db_session, clinic, make_reminder_setting):
        make_reminder_setting(clinic, timing_hours=48)
        make_reminder_setting(clinic, timing_hours=2, enabled=False)
        make_reminder_setting(clinic, timing_hours=24)

        settings = NotificationService.get_reminder_settings(db_session, clinic.id)

        assert [s.timing_hours for s in settings] == [24, 48]


class TestCreateSessionReminders:

    def test_one_reminder_per_setting_and_channel(self, db_session, clinic, make_reminder_setting, make_series, future_start):
        make_reminder_setting(clinic, timing_hours=24, channels=["email", "sms"])
        make_reminder_setting(clinic, timing_hours=48, template="See you {{appointment_date}}, {{patient_name}}")
        result = make_series()

        assert NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id) == 3

        reminders = _notifications(db_session, result.anchor_id)
        assert sorted(r.channel for r in reminders) == ["email", "email", "sms"]
        due = {(r.channel, r.scheduled_for) for r in reminders}
        assert ("sms", future_start - timedelta(hours=24)) in due
        assert ("email", future_start - timedelta(hours=48)) in due
        templated = [r for r in reminders if r.scheduled_for == future_start - timedelta(hours=48)][0]
        assert templated.message == f"See you {future_start.strftime('%Y-%m-%d')}, Pat Patient"
        assert all(r.status == "pending" and r.subject == "Appointment Reminder" for r in reminders)
        assert reminders[0].extra_data == {'patient_email': 'pat@example.com', 'patient_phone': '+15550100'}

    def test_past_due_reminders_are_skipped(self, db_session, clinic, make_reminder_setting, make_series):
        make_reminder_setting(clinic, timing_hours=24)
        make_reminder_setting(clinic, timing_hours=48)
        soon = datetime.now(timezone.utc) + timedelta(hours=30)
        result = make_series(start=soon)

        assert NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id) == 1

    def test_no_settings(self, db_session, clinic, make_series):
        result = make_series()
        assert NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id) == 0

    def test_cancelled_session_gets_no_reminders(self, db_session, clinic, tenant, make_reminder_setting, make_series):
        make_reminder_setting(clinic)
        result = make_series()
        SessionSeriesService.cancel_session(db_session, tenant, result.anchor_id)

        assert NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id) == 0

    def test_series_reminders(self, db_session, clinic, make_reminder_setting, make_series):
        make_reminder_setting(clinic)
        result = make_series(follow_ups=3)

        assert NotificationService.create_series_reminders(db_session, result.session_ids, clinic.id) == 4


class TestNotices:

    def test_rescheduling_notice(self, db_session, clinic, make_series):
        result = make_series()
        old_time = datetime(2025, 10, 25, 10, 0, tzinfo=timezone.utc)
        new_time = datetime(2025, 10, 25, 14, 0, tzinfo=timezone.utc)

        notice = NotificationService.send_rescheduling_notification(
            db_session, result.anchor_id, clinic.id, old_time, new_time
        )

        assert notice.notification_type == "rescheduling"
        assert notice.channel == "email"
        assert notice.message == (
            "Your appointment has been rescheduled from Sat, Oct 25 2025 at 10:00 AM UTC "
            "to Sat, Oct 25 2025 at 2:00 PM UTC."
        )

    def test_rescheduling_notice_needs_email(self, db_session, clinic, make_patient, make_series):
        no_email = make_patient(clinic, email=None)
        result = make_series(patient_id=no_email.id)

        now = datetime.now(timezone.utc)
        assert NotificationService.send_rescheduling_notification(
            db_session, result.anchor_id, clinic.id, now, now + timedelta(hours=1)
        ) is None

    def test_cancellation_cancels_reminders_only(self, db_session, clinic, make_reminder_setting, make_series):
        make_reminder_setting(clinic)
        result = make_series()
        NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id)
        sibling_reminders = NotificationService.create_session_reminders(db_session, result.follow_up_ids[0], clinic.id)

        notice = NotificationService.send_cancellation_notification(db_session, result.anchor_id, clinic.id)

        assert notice.status == "pending"
        assert notice.message.startswith("Your appointment on ")
        assert notice.message.endswith(" has been cancelled.")
        reminders = _notifications(db_session, result.anchor_id, "appointment_reminder")
        assert {r.status for r in reminders} == {"cancelled"}
        sibling = _notifications(db_session, result.follow_up_ids[0], "appointment_reminder")
        assert len(sibling) == sibling_reminders
        assert {r.status for r in sibling} == {"pending"}

    def test_cancel_session_notifications_by_type(self, db_session, clinic, make_reminder_setting, make_series):
        make_reminder_setting(clinic)
        result = make_series()
        NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id)
        now = datetime.now(timezone.utc)
        NotificationService.send_rescheduling_notification(db_session, result.anchor_id, clinic.id, now, now)

        assert NotificationService.cancel_session_notifications(db_session, result.anchor_id, "rescheduling") == 1
        assert NotificationService.cancel_session_notifications(db_session, result.anchor_id) == 1
        assert NotificationService.cancel_session_notifications(db_session, result.anchor_id) == 0


class TestDispatch:

    def test_due_notifications_are_sent(self, db_session, clinic, make_reminder_setting, make_series, future_start):
        make_reminder_setting(clinic)
        result = make_series()
        NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id)

        assert NotificationService.process_pending_notifications(db_session).processed == 0

        summary = NotificationService.process_pending_notifications(db_session, now=future_start)

        assert summary.sent == 1
        assert summary.failed == 0
        assert {n.status for n in _notifications(db_session)} == {"sent"}
        assert all(n.sent_at is not None for n in _notifications(db_session))

    def test_failed_delivery_is_recorded(self, db_session, clinic, make_reminder_setting, make_patient, make_series, future_start):
        make_reminder_setting(clinic, channels=["sms"])
        no_phone = make_patient(clinic, phone=None)
        result = make_series(patient_id=no_phone.id)
        NotificationService.create_session_reminders(db_session, result.anchor_id, clinic.id)

        summary = NotificationService.process_pending_notifications(db_session, now=future_start)

        assert summary.failed == 1
        notification = _notifications(db_session)[0]
        assert notification.status == "failed"
        assert "No sms address" in notification.error_message

    def test_one_failure_does_not_stop_others(self, db_session, clinic, make_series):
        result = make_series()
        now = datetime.now(timezone.utc)
        for _ in range(3):
            NotificationService.send_rescheduling_notification(db_session, result.anchor_id, clinic.id, now, now)
        calls = []

        def flaky(notification):
            calls.append(notification.id)
            if len(calls) == 2:
                raise NotificationDeliveryError("mailbox full")

        summary = NotificationService.process_pending_notifications(
            db_session, now=now + timedelta(minutes=1), deliver=flaky
        )

        assert (summary.sent, summary.failed) == (2, 1)
        assert [n.status for n in _notifications(db_session)] == ["sent", "failed", "sent"]

    def test_deliver_rejects_unknown_channel(self):
        notification = Notification(id=1, channel="pager", recipient_type="patient", recipient_id=1, extra_data={})
        with pytest.raises(NotificationDeliveryError):
            deliver_notification(notification)

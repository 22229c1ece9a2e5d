"""
Unit tests for the default reminder settings seed script.
"""

import importlib.util
from pathlib import Path

import pytest

from models import NotificationSetting
from services.notification_service import DEFAULT_REMINDER_SETTINGS

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "seed_notification_settings.py"


@pytest.fixture(scope="module")
def seed_script():
    spec = importlib.util.spec_from_file_location("seed_notification_settings", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _timings(db_session, clinic_id):
    return sorted(
        s.timing_hours for s in db_session.query(NotificationSetting).filter(
            NotificationSetting.clinic_id == clinic_id
        )
    )


class TestSeedNotificationSettings:

    def test_seeds_active_clinics_only(self, db_session, seed_script, clinic, make_clinic):
        closed = make_clinic("Closed Clinic")
        closed.is_active = False
        db_session.commit()

        created = seed_script.seed_notification_settings(db_session)

        assert created == len(DEFAULT_REMINDER_SETTINGS)
        assert _timings(db_session, clinic.id) == [24, 48]
        assert _timings(db_session, closed.id) == []

    def test_explicit_clinic_ids(self, db_session, seed_script, clinic, other_clinic):
        assert seed_script.seed_notification_settings(db_session, [other_clinic.id]) == 2

        assert _timings(db_session, clinic.id) == []
        assert _timings(db_session, other_clinic.id) == [24, 48]

    def test_existing_timings_are_kept(self, db_session, seed_script, clinic, make_reminder_setting):
        make_reminder_setting(clinic, timing_hours=24)

        assert seed_script.seed_notification_settings(db_session, [clinic.id]) == 1
        assert seed_script.seed_notification_settings(db_session, [clinic.id]) == 0
        assert _timings(db_session, clinic.id) == [24, 48]

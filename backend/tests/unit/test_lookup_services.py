"""
Unit tests for patient and staff lookups used when scheduling sessions.
"""

import pytest

from auth.tenant_context import TenantContext
from core.exceptions import TherapistIneligibleError, TherapistNotFoundError
from services.patient_service import PatientService
from services.practitioner_service import PractitionerService


class TestPatientService:

    def test_find_patient_in_clinic(self, db_session, patient, tenant):
        assert PatientService.find_patient(db_session, patient.id, tenant).id == patient.id

    def test_deleted_patient_is_hidden(self, db_session, make_patient, clinic, tenant):
        gone = make_patient(clinic, is_deleted=True)
        assert PatientService.find_patient(db_session, gone.id, tenant) is None

    def test_other_clinic_is_hidden(self, db_session, patient, other_clinic):
        assert PatientService.find_patient(db_session, patient.id, TenantContext.for_clinic(other_clinic.id)) is None


class TestPractitionerService:

    def test_find_staff(self, db_session, therapist, clinic):
        staff = PractitionerService.find_staff(db_session, therapist.id)

        assert staff.clinic_id == clinic.id
        assert staff.full_name == "Terry Therapist"
        assert staff.is_eligible_therapist
        assert staff.has_therapist_title

    def test_find_missing_staff(self, db_session):
        assert PractitionerService.find_staff(db_session, 404) is None

    def test_receptionist_admin_is_assignable(self, db_session, make_staff, clinic, tenant):
        admin = make_staff(clinic, role="clinic_admin", job_title="Receptionist")

        staff = PractitionerService.get_assignable_therapist(db_session, admin.id, tenant)

        assert staff.is_eligible_therapist
        assert not staff.has_therapist_title

    def test_system_admin_is_not_assignable(self, db_session, make_staff):
        admin = make_staff(None, role="system_admin", job_title=None)
        bypass = TenantContext(clinic_id=None, role="system_admin", bypass_tenant_filter=True)

        with pytest.raises(TherapistIneligibleError):
            PractitionerService.get_assignable_therapist(db_session, admin.id, bypass)

    def test_other_clinic_is_not_found(self, db_session, therapist, other_clinic):
        with pytest.raises(TherapistNotFoundError):
            PractitionerService.get_assignable_therapist(
                db_session, therapist.id, TenantContext.for_clinic(other_clinic.id)
            )

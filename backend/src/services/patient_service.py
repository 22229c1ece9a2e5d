"""
Patient service for shared patient business logic.

Sessions only reference patients through this lookup, which enforces that
the patient belongs to the requesting clinic.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from auth.tenant_context import TenantContext
from models import Patient
from utils.query_helpers import apply_tenant_filter

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service class for patient operations.

    Patient CRUD lives outside this backend; only lookups are provided.
    """

    @staticmethod
    def find_patient(
        db: Session,
        patient_id: int,
        tenant: TenantContext
    ) -> Optional[Patient]:
        """
        Find a patient visible to the tenant.

        Args:
            db: Database session
            patient_id: Patient ID
            tenant: Tenant context of the request

        Returns:
            Patient object, or None if it does not exist, is soft-deleted,
            or belongs to another clinic
        """
        query = db.query(Patient).filter(
            Patient.id == patient_id,
            Patient.is_deleted == False  # noqa: E712
        )
        query = apply_tenant_filter(query, Patient, tenant)
        patient = query.first()

        if patient is None:
            logger.debug(f"Patient {patient_id} not visible to {tenant}")
        return patient

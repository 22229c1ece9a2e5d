"""
Practitioner service for staff lookups.

A therapist is any active clinic admin or staff user. The assignment rules
(same clinic, eligible role) are enforced here so the series service and the
direct session update share them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from auth.tenant_context import TenantContext
from core.constants import STAFF_ELIGIBLE_ROLES, THERAPIST_JOB_TITLES
from core.exceptions import TherapistIneligibleError, TherapistNotFoundError
from models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaffProfile:
    """Subset of a staff user needed to validate a therapist assignment."""

    user_id: int
    clinic_id: Optional[int]
    role: str
    job_title: Optional[str]
    is_active: bool
    full_name: str

    @property
    def is_eligible_therapist(self) -> bool:
        return self.is_active and self.role in STAFF_ELIGIBLE_ROLES

    @property
    def has_therapist_title(self) -> bool:
        return self.job_title in THERAPIST_JOB_TITLES


class PractitionerService:
    """
    Service class for practitioner (therapist) operations.
    """

    @staticmethod
    def find_staff(db: Session, user_id: int) -> Optional[StaffProfile]:
        """
        Look up a staff user by id, regardless of clinic.

        Returns:
            StaffProfile, or None if the user does not exist
        """
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            return None

        return StaffProfile(
            user_id=user.id,
            clinic_id=user.clinic_id,
            role=user.role,
            job_title=user.job_title,
            is_active=user.is_active,
            full_name=user.full_name
        )

    @staticmethod
    def get_assignable_therapist(
        db: Session,
        therapist_id: int,
        tenant: TenantContext
    ) -> StaffProfile:
        """
        Validate that a user may be assigned as therapist for the tenant's clinic.

        Args:
            db: Database session
            therapist_id: User ID of the proposed therapist
            tenant: Tenant context of the request

        Returns:
            StaffProfile of the therapist

        Raises:
            TherapistNotFoundError: If the user does not exist in the tenant's clinic
            TherapistIneligibleError: If the user is inactive or not clinic staff
        """
        staff = PractitionerService.find_staff(db, therapist_id)
        if staff is None or not tenant.owns(staff.clinic_id):
            raise TherapistNotFoundError()

        if not staff.is_eligible_therapist:
            logger.warning(
                f"Rejected therapist {therapist_id} (role={staff.role}, active={staff.is_active})"
            )
            raise TherapistIneligibleError()

        if not staff.has_therapist_title:
            logger.debug(f"Therapist {therapist_id} has non-therapy job title '{staff.job_title}'")

        return staff

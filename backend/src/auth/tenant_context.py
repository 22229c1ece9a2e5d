"""
Tenant context for clinic-scoped data access.

Every session read and write is scoped to ``TenantContext.clinic_id``. System
admins may act on a single clinic by naming it explicitly; without a target
clinic they bypass the tenant filter entirely.
"""

from typing import Optional


class TenantContext:
    """Clinic scope of the current request."""

    def __init__(
        self,
        clinic_id: Optional[int],
        role: str,
        user_id: Optional[int] = None,
        bypass_tenant_filter: bool = False,
        is_impersonating: bool = False
    ):
        self.clinic_id = clinic_id
        self.role = role
        self.user_id = user_id
        self.bypass_tenant_filter = bypass_tenant_filter
        self.is_impersonating = is_impersonating  # System admin acting on a specific clinic

    @classmethod
    def for_clinic(cls, clinic_id: int, role: str = "staff", user_id: Optional[int] = None) -> "TenantContext":
        """Context for a regular clinic user (also used by scripts and tests)."""
        return cls(clinic_id=clinic_id, role=role, user_id=user_id)

    def owns(self, clinic_id: Optional[int]) -> bool:
        """Whether an entity of ``clinic_id`` is visible in this context."""
        if self.bypass_tenant_filter:
            return True
        return clinic_id is not None and clinic_id == self.clinic_id

    def __repr__(self) -> str:
        return (
            f"TenantContext(clinic_id={self.clinic_id}, role='{self.role}', "
            f"bypass_tenant_filter={self.bypass_tenant_filter})"
        )

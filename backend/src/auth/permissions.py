# pyright: reportMissingTypeStubs=false
from fastapi import Depends

from auth.dependencies import build_tenant_context, require_admin_role, UserContext
from auth.tenant_context import TenantContext


def require_admin_tenant():
    """
    Dependency that ensures the user is a clinic admin (or system admin)
    and returns their tenant context.

    Used by administrative operations such as physically deleting a series.

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    def dependency(
        clinic_id: int | None = None,
        current_user: UserContext = Depends(require_admin_role)
    ) -> TenantContext:
        return build_tenant_context(current_user, clinic_id)

    return dependency

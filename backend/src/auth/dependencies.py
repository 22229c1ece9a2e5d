# pyright: reportMissingTypeStubs=false
"""
Authentication and authorization dependencies for FastAPI.

Provides dependency injection functions for user authentication,
role-based access control, and clinic (tenant) isolation.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from auth.tenant_context import TenantContext
from core.constants import ROLE_SYSTEM_ADMIN, ROLE_CLINIC_ADMIN, SCHEDULING_ROLES
from core.database import get_db
from services.jwt_service import jwt_service, TokenPayload
from models import User

logger = logging.getLogger(__name__)


class UserContext:
    """Authenticated user context extracted from JWT token."""

    def __init__(
        self,
        user_id: int,
        email: str,
        role: str,
        clinic_id: Optional[int],
        name: str
    ):
        self.user_id = user_id
        self.email = email
        self.role = role  # "system_admin", "clinic_admin" or "staff"
        self.clinic_id = clinic_id
        self.name = name

    def is_system_admin(self) -> bool:
        """Check if user is a system admin."""
        return self.role == ROLE_SYSTEM_ADMIN

    def has_role(self, *roles: str) -> bool:
        """Check if user has one of the given roles (system admins always do)."""
        return self.role in roles or self.is_system_admin()

    def __repr__(self) -> str:
        return f"UserContext(user_id={self.user_id}, role='{self.role}', clinic_id={self.clinic_id})"


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Extract and validate JWT token payload."""
    if not credentials:
        return None

    return jwt_service.verify_token(credentials.credentials)


def get_current_user(
    payload: Optional[TokenPayload] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> UserContext:
    """Get authenticated user context from JWT token."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided"
        )

    try:
        user_id = int(payload.sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated"
        )

    # Role and clinic come from the database so revoked access takes effect immediately
    if user.role != ROLE_SYSTEM_ADMIN and payload.clinic_id != user.clinic_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Clinic access denied"
        )

    return UserContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        clinic_id=user.clinic_id,
        name=user.full_name
    )


# Role-based authorization dependencies
def require_scheduling_access(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require a role that may manage sessions (clinic admin, staff or system admin)."""
    if user.role not in SCHEDULING_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )
    return user


def require_admin_role(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require clinic admin role (or system admin)."""
    if not user.has_role(ROLE_CLINIC_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user


# Clinic isolation enforcement
def build_tenant_context(user: UserContext, target_clinic_id: Optional[int] = None) -> TenantContext:
    """
    Build the tenant context for a user.

    System admins act on ``target_clinic_id`` when given and otherwise see
    all clinics. Regular users are always limited to their own clinic.
    """
    if user.is_system_admin():
        if target_clinic_id is not None:
            return TenantContext(
                clinic_id=target_clinic_id,
                role=user.role,
                user_id=user.user_id,
                is_impersonating=True
            )
        return TenantContext(
            clinic_id=None,
            role=user.role,
            user_id=user.user_id,
            bypass_tenant_filter=True
        )

    if user.clinic_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not associated with any clinic"
        )

    return TenantContext(clinic_id=user.clinic_id, role=user.role, user_id=user.user_id)


def get_tenant_context(
    clinic_id: Optional[int] = Query(None, description="Target clinic (system admins only)"),
    user: UserContext = Depends(require_scheduling_access)
) -> TenantContext:
    """FastAPI dependency returning the tenant context of the current request."""
    return build_tenant_context(user, clinic_id)

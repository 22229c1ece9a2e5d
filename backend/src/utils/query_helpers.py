"""
Query helper utilities for database operations.

This module provides shared utilities for common query patterns, in
particular the clinic_id filter that enforces tenant isolation.
"""

from typing import Any, TypeVar

from sqlalchemy.orm import Query

from auth.tenant_context import TenantContext

# Type variable for Query generic type
T = TypeVar('T')


def apply_tenant_filter(query: Query[T], model: Any, tenant: TenantContext) -> Query[T]:
    """
    Restrict a query to the tenant's clinic.

    Args:
        query: SQLAlchemy query over ``model``
        model: Mapped class with a ``clinic_id`` column
        tenant: Tenant context of the request

    Returns:
        The query filtered by ``model.clinic_id``, or unchanged when the
        context bypasses tenant filtering (system admin without a target clinic)

    Raises:
        ValueError: If tenant is missing
    """
    if tenant is None:
        raise ValueError("Tenant context is required")

    if tenant.bypass_tenant_filter:
        return query

    return query.filter(model.clinic_id == tenant.clinic_id)

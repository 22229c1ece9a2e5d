"""
Utility modules for the session scheduling backend.

This package contains shared helpers used across the application,
including datetime utilities, periodicity arithmetic, the session status
state machine and database query helpers.
"""

from utils.query_helpers import apply_tenant_filter

__all__ = ['apply_tenant_filter']

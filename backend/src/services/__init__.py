"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across API endpoints, scripts and the scheduler.
"""

from .patient_service import PatientService
from .practitioner_service import PractitionerService
from .session_store import SessionStore
from .notification_service import NotificationService
from .session_series_service import SessionSeriesService

__all__ = [
    "PatientService",
    "PractitionerService",
    "SessionStore",
    "NotificationService",
    "SessionSeriesService",
]

"""
Domain exceptions for session scheduling.

Services raise these instead of HTTPException so they can be used from
scripts and tests without FastAPI. The API layer maps each one to a
response through the handlers registered in main.py, using ``status_code``
and ``error_code``.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for all scheduling errors surfaced to callers."""

    status_code: int = 400
    error_code: str = "scheduling_error"
    default_message: str = "Scheduling request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ===== Validation (400) =====

class SchedulingValidationError(SchedulingError):
    """Request is missing data or is malformed. Detected before any write."""

    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid scheduling request"


class MissingFieldsError(SchedulingValidationError):
    error_code = "missing_fields"
    default_message = "Missing required fields: patientId, therapistId, startTime, periodicity"


class InvalidPeriodicityError(SchedulingValidationError):
    error_code = "invalid_periodicity"
    default_message = "Invalid periodicity. Must be Weekly, BiWeekly, or Monthly"


class InvalidFollowUpCountError(SchedulingValidationError):
    error_code = "invalid_follow_up_count"
    default_message = "Number of follow-ups must be between 1 and 50"


class InvalidDurationError(SchedulingValidationError):
    error_code = "invalid_duration"
    default_message = "Duration must be a positive number of minutes"


class InvalidDatetimeError(SchedulingValidationError):
    error_code = "invalid_datetime"
    default_message = "Invalid datetime format (expected ISO-8601)"


class NoOpRescheduleError(SchedulingValidationError):
    error_code = "noop_reschedule"
    default_message = "New start time is the same as the current start time"


class InvalidStatusTransitionError(SchedulingValidationError):
    error_code = "invalid_status_transition"
    default_message = "Session status transition is not allowed"


class TherapistIneligibleError(SchedulingValidationError):
    error_code = "therapist_ineligible"
    default_message = "Therapist must be a staff member or clinic admin"


# ===== Not found (404) =====

class ResourceNotFoundError(SchedulingError):
    """
    Referenced entity does not exist in the caller's clinic.

    Entities that exist in another clinic are reported the same way so
    their existence is never revealed across tenants.
    """

    status_code = 404
    error_code = "not_found"
    default_message = "Resource not found"


class PatientNotFoundError(ResourceNotFoundError):
    error_code = "patient_not_found"
    default_message = "Patient not found or does not belong to your clinic"


class TherapistNotFoundError(ResourceNotFoundError):
    error_code = "therapist_not_found"
    default_message = "Therapist not found or does not belong to your clinic"


class SessionNotFoundError(ResourceNotFoundError):
    error_code = "session_not_found"
    default_message = "Session not found or does not belong to your clinic"


# ===== Persistence (500) =====

class PersistenceError(SchedulingError):
    """A transactional write failed and was rolled back; nothing was changed."""

    status_code = 500
    error_code = "persistence_error"
    default_message = "Failed to save session changes"

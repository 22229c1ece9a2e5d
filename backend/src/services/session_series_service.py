"""
Session series service: recurring series creation, cascade reschedule and
cancellation.

A series is one anchor session plus N follow-ups generated from a
periodicity. Moving any session moves it and every later session of the
series by the same delta; earlier sessions stay where they are. All writes of
one operation happen in a single transaction. Notifications are fired
through an injected NotificationTrigger only after that transaction commits,
and their failures never affect the result.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.tenant_context import TenantContext
from core import config
from core.constants import (
    DEFAULT_FOLLOW_UP_COUNT, DEFAULT_SESSION_DURATION_MINUTES,
    MAX_FOLLOW_UP_COUNT, MIN_FOLLOW_UP_COUNT
)
from core.exceptions import (
    InvalidDatetimeError, InvalidDurationError, InvalidFollowUpCountError,
    MissingFieldsError, NoOpRescheduleError, PatientNotFoundError,
    PersistenceError, SessionNotFoundError
)
from models import TherapySession
from services.notification_trigger import NotificationTrigger
from services.patient_service import PatientService
from services.practitioner_service import PractitionerService
from services.session_store import SessionFilters, SessionStore
from utils.datetime_utils import parse_datetime_to_utc
from utils.periodicity import Periodicity, generate_series_dates, parse_series_periodicity
from utils.session_status import SessionStatus, validate_status_transition

logger = logging.getLogger(__name__)


@dataclass
class SeriesCreationResult:
    """Ids of a newly created series."""

    anchor_id: int
    follow_up_ids: List[int]
    periodicity: Periodicity

    @property
    def total_sessions(self) -> int:
        return 1 + len(self.follow_up_ids)

    @property
    def session_ids(self) -> List[int]:
        return [self.anchor_id, *self.follow_up_ids]


@dataclass
class RescheduleResult:
    """Outcome of a cascade reschedule."""

    updated_count: int
    delta_minutes: float
    affected_session_ids: List[int] = field(default_factory=list)


def _parse_time(value: Union[str, datetime]) -> datetime:
    try:
        return parse_datetime_to_utc(value)
    except (ValueError, TypeError) as e:
        raise InvalidDatetimeError(f"Invalid datetime: {value}") from e


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clinic_scope(tenant: TenantContext, clinic_id: int) -> TenantContext:
    """Tenant context pinned to one clinic, for lookups of related entities."""
    if not tenant.bypass_tenant_filter and tenant.clinic_id == clinic_id:
        return tenant
    return TenantContext.for_clinic(clinic_id, role=tenant.role, user_id=tenant.user_id)


def _allow_completed_to_cancelled(override: Optional[bool]) -> bool:
    if override is not None:
        return override
    return config.ALLOW_COMPLETED_TO_CANCELLED


def _notify(description: str, callback: Callable[[], None]) -> None:
    """Run a notification callback, logging instead of raising on failure."""
    try:
        callback()
    except Exception as e:
        logger.exception(f"Notification failed ({description}): {e}")


class SessionSeriesService:
    """
    Service class for session and session-series operations.
    """

    @staticmethod
    def create_session_series(
        db: Session,
        tenant: TenantContext,
        patient_id: Optional[int],
        therapist_id: Optional[int],
        start_time: Union[str, datetime, None],
        periodicity: Union[str, Periodicity, None],
        duration_minutes: Optional[int] = None,
        number_of_follow_ups: Optional[int] = None,
        notes: Optional[str] = None,
        notifier: Optional[NotificationTrigger] = None
    ) -> SeriesCreationResult:
        """
        Create an anchor session and its follow-ups.

        Validation runs before any write, in this order: required fields,
        periodicity, follow-up count and duration, start time format, patient,
        therapist.

        Args:
            db: Database session
            tenant: Tenant context of the request
            patient_id: Patient of every session in the series
            therapist_id: Therapist (clinic admin or staff) of every session
            start_time: Anchor start (datetime or ISO-8601 string)
            periodicity: 'Weekly', 'BiWeekly' or 'Monthly'
            duration_minutes: Session length, default 60
            number_of_follow_ups: Follow-ups after the anchor, 1..50, default 8
            notes: Copied onto every session
            notifier: Receives on_series_created after commit

        Returns:
            SeriesCreationResult with the anchor id and follow-up ids in series order

        Raises:
            SchedulingValidationError: For invalid input
            PatientNotFoundError, TherapistNotFoundError: For unknown or foreign entities
            PersistenceError: If the write fails (nothing is stored)
        """
        if (
            _is_blank(patient_id)
            or _is_blank(therapist_id)
            or _is_blank(start_time)
            or _is_blank(periodicity)
        ):
            raise MissingFieldsError()

        series_periodicity = parse_series_periodicity(periodicity)

        follow_up_count = DEFAULT_FOLLOW_UP_COUNT if number_of_follow_ups is None else number_of_follow_ups
        if not MIN_FOLLOW_UP_COUNT <= follow_up_count <= MAX_FOLLOW_UP_COUNT:
            raise InvalidFollowUpCountError()

        duration = DEFAULT_SESSION_DURATION_MINUTES if duration_minutes is None else duration_minutes
        if duration <= 0:
            raise InvalidDurationError()

        anchor_start = _parse_time(start_time)

        patient = PatientService.find_patient(db, patient_id, tenant)
        if patient is None:
            raise PatientNotFoundError()
        clinic_id = patient.clinic_id

        PractitionerService.get_assignable_therapist(db, therapist_id, _clinic_scope(tenant, clinic_id))

        base = {
            'clinic_id': clinic_id,
            'patient_id': patient_id,
            'therapist_id': therapist_id,
            'duration_minutes': duration,
            'status': SessionStatus.SCHEDULED.value,
            'periodicity': series_periodicity.value,
            'notes': notes,
        }
        try:
            follow_up_dates = generate_series_dates(anchor_start, series_periodicity, follow_up_count)
        except (OverflowError, ValueError) as e:
            raise InvalidDatetimeError("Series extends beyond the supported date range") from e

        try:
            anchor_id = SessionStore.create(db, {
                **base,
                'start_time': anchor_start,
                'is_follow_up': False,
                'parent_session_id': None,
                'series_order': 0,
            }, commit=False)

            follow_up_ids = SessionStore.create_batch(db, [
                {
                    **base,
                    'start_time': follow_up_start,
                    'is_follow_up': True,
                    'parent_session_id': anchor_id,
                    'series_order': order,
                }
                for order, follow_up_start in enumerate(follow_up_dates, start=1)
            ], commit=False)

            db.commit()
        except PersistenceError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.exception(f"Failed to create session series: {e}")
            db.rollback()
            raise PersistenceError("Failed to create session series") from e

        result = SeriesCreationResult(
            anchor_id=anchor_id,
            follow_up_ids=follow_up_ids,
            periodicity=series_periodicity,
        )
        logger.info(
            f"Created {series_periodicity.value} series {anchor_id} with {result.total_sessions} sessions "
            f"for patient {patient_id} in clinic {clinic_id}"
        )

        if notifier is not None:
            _notify(
                f"series {anchor_id} created",
                lambda: notifier.on_series_created(result.session_ids, clinic_id)
            )

        return result

    @staticmethod
    def get_session_by_id(db: Session, tenant: TenantContext, session_id: int) -> TherapySession:
        """
        Get one session.

        Raises:
            SessionNotFoundError: If the session does not exist in the tenant
        """
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            raise SessionNotFoundError()
        return session

    @staticmethod
    def get_sessions(
        db: Session,
        tenant: TenantContext,
        filters: Optional[SessionFilters] = None
    ) -> List[TherapySession]:
        """List sessions of the tenant, newest first."""
        return SessionStore.find_all(db, tenant, filters)

    @staticmethod
    def get_session_series(db: Session, tenant: TenantContext, session_id: int) -> List[TherapySession]:
        """Return the whole series containing ``session_id``, ordered by series_order."""
        session = SessionSeriesService.get_session_by_id(db, tenant, session_id)
        return SessionStore.find_series_by_anchor_id(db, session.anchor_id, tenant)

    @staticmethod
    def reschedule_session(
        db: Session,
        tenant: TenantContext,
        session_id: int,
        new_start_time: Union[str, datetime, None],
        notifier: Optional[NotificationTrigger] = None
    ) -> RescheduleResult:
        """
        Move a session and every later session of its series by the same delta.

        Sessions with a lower series_order are not touched, so rescheduling a
        middle session can leave it closer to (or before) its predecessor.

        Returns:
            RescheduleResult with the number of moved sessions, the delta in
            minutes and the moved ids in series order

        Raises:
            MissingFieldsError: If new_start_time is missing
            InvalidDatetimeError: If new_start_time cannot be parsed
            SessionNotFoundError: If the session does not exist in the tenant
            NoOpRescheduleError: If the new time equals the current time
            PersistenceError: If the batch update fails (no session is moved)
        """
        if _is_blank(session_id) or _is_blank(new_start_time):
            raise MissingFieldsError("Missing required fields: sessionId, newStartTime")

        new_start = _parse_time(new_start_time)

        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            raise SessionNotFoundError()

        delta = new_start - session.start_time
        if delta.total_seconds() == 0:
            raise NoOpRescheduleError()

        series = SessionStore.find_series_by_anchor_id(db, session.anchor_id, tenant)
        to_move = [s for s in series if s.series_order >= session.series_order]

        # (id, old start, new start), captured before the objects are modified
        try:
            moves = [(s.id, s.start_time, s.start_time + delta) for s in to_move]
        except OverflowError as e:
            raise InvalidDatetimeError("Rescheduled series extends beyond the supported date range") from e

        try:
            updated = SessionStore.update_batch(
                db,
                [(move_id, {'start_time': new_time}) for move_id, _, new_time in moves],
                tenant,
                commit=False
            )
            db.commit()
        except PersistenceError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.exception(f"Failed to reschedule series of session {session_id}: {e}")
            db.rollback()
            raise PersistenceError("Failed to reschedule session series") from e

        delta_minutes = delta.total_seconds() / 60
        clinic_id = session.clinic_id
        logger.info(
            f"Rescheduled {updated} sessions of series {session.anchor_id} "
            f"from order {session.series_order} by {delta_minutes:+g} minutes"
        )

        if notifier is not None:
            for move_id, old_time, new_time in moves:
                _notify(
                    f"session {move_id} rescheduled",
                    lambda move_id=move_id, old_time=old_time, new_time=new_time:
                        notifier.on_rescheduled(move_id, clinic_id, old_time, new_time)
                )

        return RescheduleResult(
            updated_count=updated,
            delta_minutes=delta_minutes,
            affected_session_ids=[move_id for move_id, _, _ in moves],
        )

    @staticmethod
    def cancel_session(
        db: Session,
        tenant: TenantContext,
        session_id: int,
        notifier: Optional[NotificationTrigger] = None,
        allow_completed_to_cancelled: Optional[bool] = None
    ) -> bool:
        """
        Cancel one session.

        Cancelling an already cancelled session succeeds without changes and
        without a second notification.

        Returns:
            True if the session was changed, False if it was already cancelled

        Raises:
            SessionNotFoundError: If the session does not exist in the tenant
            InvalidStatusTransitionError: If a completed session may not be cancelled
        """
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            raise SessionNotFoundError()

        if session.status == SessionStatus.CANCELLED.value:
            logger.info(f"Session {session_id} already cancelled")
            return False

        validate_status_transition(
            session.status,
            SessionStatus.CANCELLED,
            _allow_completed_to_cancelled(allow_completed_to_cancelled)
        )

        SessionStore.update(db, session_id, {'status': SessionStatus.CANCELLED.value}, tenant)
        logger.info(f"Cancelled session {session_id}")

        if notifier is not None:
            clinic_id = session.clinic_id
            _notify(
                f"session {session_id} cancelled",
                lambda: notifier.on_cancelled(session_id, clinic_id)
            )
        return True

    @staticmethod
    def cancel_session_series(
        db: Session,
        tenant: TenantContext,
        session_id: int,
        notifier: Optional[NotificationTrigger] = None,
        allow_completed_to_cancelled: Optional[bool] = None
    ) -> int:
        """
        Cancel every session of the series containing ``session_id``.

        Every member goes into one batch update and gets a cancellation
        notification, including members that were already cancelled.
        Completed sessions are included only when completed -> cancelled is
        allowed.

        Returns:
            Number of sessions in the batch (the whole series unless completed
            members were skipped)

        Raises:
            SessionNotFoundError: If the session does not exist in the tenant
            PersistenceError: If the batch update fails (no session is changed)
        """
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            raise SessionNotFoundError()

        allow_completed = _allow_completed_to_cancelled(allow_completed_to_cancelled)
        series = SessionStore.find_series_by_anchor_id(db, session.anchor_id, tenant)
        to_cancel = [
            s.id for s in series
            if s.status != SessionStatus.COMPLETED.value or allow_completed
        ]

        try:
            SessionStore.update_batch(
                db,
                [(cancel_id, {'status': SessionStatus.CANCELLED.value}) for cancel_id in to_cancel],
                tenant,
                commit=False
            )
            db.commit()
        except PersistenceError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.exception(f"Failed to cancel series of session {session_id}: {e}")
            db.rollback()
            raise PersistenceError("Failed to cancel session series") from e

        logger.info(f"Cancelled {len(to_cancel)} sessions of series {session.anchor_id}")

        if notifier is not None:
            clinic_id = session.clinic_id
            for cancel_id in to_cancel:
                _notify(
                    f"session {cancel_id} cancelled",
                    lambda cancel_id=cancel_id: notifier.on_cancelled(cancel_id, clinic_id)
                )
        return len(to_cancel)

    @staticmethod
    def update_session(
        db: Session,
        tenant: TenantContext,
        session_id: int,
        status: Optional[str] = None,
        therapist_id: Optional[int] = None,
        notes: Optional[str] = None,
        notifier: Optional[NotificationTrigger] = None,
        allow_completed_to_cancelled: Optional[bool] = None
    ) -> TherapySession:
        """
        Edit status, therapist or notes of one session.

        Start times are changed only through reschedule_session.

        Raises:
            SessionNotFoundError: If the session does not exist in the tenant
            InvalidStatusTransitionError: If the status change is not allowed
            TherapistNotFoundError, TherapistIneligibleError: For an invalid therapist
        """
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            raise SessionNotFoundError()

        patch: Dict[str, Any] = {}
        previous_status = session.status

        if status is not None:
            new_status = validate_status_transition(
                session.status,
                status,
                _allow_completed_to_cancelled(allow_completed_to_cancelled)
            )
            if new_status.value != session.status:
                patch['status'] = new_status.value

        if therapist_id is not None and therapist_id != session.therapist_id:
            PractitionerService.get_assignable_therapist(
                db, therapist_id, _clinic_scope(tenant, session.clinic_id)
            )
            patch['therapist_id'] = therapist_id

        if notes is not None:
            patch['notes'] = notes

        if patch:
            SessionStore.update(db, session_id, patch, tenant)
            logger.info(f"Updated session {session_id}: {sorted(patch)}")

        if (
            notifier is not None
            and patch.get('status') == SessionStatus.CANCELLED.value
            and previous_status != SessionStatus.CANCELLED.value
        ):
            clinic_id = session.clinic_id
            _notify(
                f"session {session_id} cancelled",
                lambda: notifier.on_cancelled(session_id, clinic_id)
            )

        return session

    @staticmethod
    def delete_session_series(db: Session, tenant: TenantContext, session_id: int) -> int:
        """
        Physically delete the series containing ``session_id`` and its notifications.

        Administrative cleanup only; normal workflows cancel instead.

        Returns:
            Number of sessions deleted

        Raises:
            SessionNotFoundError: If the session does not exist in the tenant
        """
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            raise SessionNotFoundError()

        anchor_id = session.anchor_id
        deleted = SessionStore.delete_series(db, anchor_id, tenant)
        logger.info(f"Deleted series {anchor_id} ({deleted} sessions)")
        return deleted

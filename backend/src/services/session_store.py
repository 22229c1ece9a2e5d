"""
Persistence layer for therapy sessions.

Every read and write is scoped by the tenant filter. Batch operations are
all-or-nothing: a failure rolls back the whole database transaction and is
reported as PersistenceError. Passing ``commit=False`` leaves the transaction
open so a caller can compose several store calls into one unit of work.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.tenant_context import TenantContext
from core.exceptions import PersistenceError
from models import TherapySession, Notification
from utils.query_helpers import apply_tenant_filter

logger = logging.getLogger(__name__)


# Columns a session update may touch. clinic_id, patient_id and the series
# linkage are fixed at creation.
UPDATABLE_FIELDS = frozenset({
    'start_time',
    'duration_minutes',
    'status',
    'periodicity',
    'notes',
    'therapist_id',
})

_CREATE_FIELDS = (
    'clinic_id',
    'patient_id',
    'therapist_id',
    'start_time',
    'duration_minutes',
    'status',
    'periodicity',
    'is_follow_up',
    'parent_session_id',
    'series_order',
    'notes',
)


@dataclass
class SessionFilters:
    """Optional filters for listing sessions. start/end bound start_time inclusively."""

    patient_id: Optional[int] = None
    therapist_id: Optional[int] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def _build_session(data: Dict[str, Any]) -> TherapySession:
    unknown = set(data) - set(_CREATE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown session fields: {sorted(unknown)}")
    return TherapySession(**data)


def _apply_patch(session: TherapySession, patch: Dict[str, Any]) -> bool:
    """Copy whitelisted fields onto a session. Returns False if nothing applied."""
    applied = False
    for field, value in patch.items():
        if field not in UPDATABLE_FIELDS:
            logger.warning(f"Ignoring non-updatable session field '{field}'")
            continue
        setattr(session, field, value)
        applied = True
    return applied


def _finish(db: Session, commit: bool) -> None:
    if commit:
        db.commit()
    else:
        db.flush()


class SessionStore:
    """
    Tenant-scoped CRUD over the ``sessions`` table.
    """

    @staticmethod
    def create(db: Session, data: Dict[str, Any], commit: bool = True) -> int:
        """
        Insert one session and return its assigned id.

        With ``commit=False`` the row is flushed (so the id is known) but the
        transaction stays open.

        Raises:
            PersistenceError: If the insert fails (the transaction is rolled back)
        """
        try:
            session = _build_session(data)
            db.add(session)
            _finish(db, commit)
            return session.id
        except SQLAlchemyError as e:
            logger.exception(f"Failed to create session: {e}")
            db.rollback()
            raise PersistenceError("Failed to create session") from e

    @staticmethod
    def create_batch(db: Session, rows: Sequence[Dict[str, Any]], commit: bool = True) -> List[int]:
        """
        Insert several sessions in one transaction.

        Returns:
            Assigned ids in input order

        Raises:
            PersistenceError: If any insert fails. No row of the batch (nor
                anything else pending in the transaction) is kept.
        """
        if not rows:
            return []

        try:
            sessions = [_build_session(row) for row in rows]
            db.add_all(sessions)
            _finish(db, commit)
            return [s.id for s in sessions]
        except SQLAlchemyError as e:
            logger.exception(f"Failed to create session batch of {len(rows)}: {e}")
            db.rollback()
            raise PersistenceError("Failed to create sessions") from e

    @staticmethod
    def find_by_id(db: Session, session_id: int, tenant: TenantContext) -> Optional[TherapySession]:
        """Find a session visible to the tenant, or None."""
        query = db.query(TherapySession).filter(TherapySession.id == session_id)
        return apply_tenant_filter(query, TherapySession, tenant).first()

    @staticmethod
    def find_all(
        db: Session,
        tenant: TenantContext,
        filters: Optional[SessionFilters] = None
    ) -> List[TherapySession]:
        """List sessions visible to the tenant, newest start time first."""
        filters = filters or SessionFilters()
        query = apply_tenant_filter(db.query(TherapySession), TherapySession, tenant)

        if filters.patient_id is not None:
            query = query.filter(TherapySession.patient_id == filters.patient_id)
        if filters.therapist_id is not None:
            query = query.filter(TherapySession.therapist_id == filters.therapist_id)
        if filters.status:
            query = query.filter(TherapySession.status == filters.status)
        if filters.start_date is not None:
            query = query.filter(TherapySession.start_time >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(TherapySession.start_time <= filters.end_date)

        return query.order_by(TherapySession.start_time.desc(), TherapySession.id.desc()).all()

    @staticmethod
    def find_follow_up_sessions(db: Session, anchor_id: int, tenant: TenantContext) -> List[TherapySession]:
        """Follow-ups of an anchor ordered by series_order (the anchor itself excluded)."""
        query = db.query(TherapySession).filter(
            TherapySession.parent_session_id == anchor_id,
            TherapySession.is_follow_up == True  # noqa: E712
        )
        query = apply_tenant_filter(query, TherapySession, tenant)
        return query.order_by(TherapySession.series_order.asc()).all()

    @staticmethod
    def find_series_by_anchor_id(db: Session, anchor_id: int, tenant: TenantContext) -> List[TherapySession]:
        """Anchor plus all follow-ups, ordered by series_order."""
        query = db.query(TherapySession).filter(
            or_(
                TherapySession.id == anchor_id,
                TherapySession.parent_session_id == anchor_id
            )
        )
        query = apply_tenant_filter(query, TherapySession, tenant)
        return query.order_by(TherapySession.series_order.asc()).all()

    @staticmethod
    def update(
        db: Session,
        session_id: int,
        patch: Dict[str, Any],
        tenant: TenantContext,
        commit: bool = True
    ) -> bool:
        """
        Apply whitelisted field changes to one session.

        Returns:
            True if the session exists in the tenant and at least one field was applied

        Raises:
            PersistenceError: If the write fails
        """
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            return False

        if not _apply_patch(session, patch):
            return False

        try:
            _finish(db, commit)
            return True
        except SQLAlchemyError as e:
            logger.exception(f"Failed to update session {session_id}: {e}")
            db.rollback()
            raise PersistenceError("Failed to update session") from e

    @staticmethod
    def update_batch(
        db: Session,
        updates: Iterable[Tuple[int, Dict[str, Any]]],
        tenant: TenantContext,
        commit: bool = True
    ) -> int:
        """
        Apply several per-session patches in one transaction.

        Either every patch is persisted or none is. A session id missing
        from the tenant fails the whole batch.

        Returns:
            Number of sessions updated

        Raises:
            PersistenceError: If any session is missing or any write fails
        """
        updates = list(updates)
        if not updates:
            return 0

        ids = [session_id for session_id, _ in updates]
        query = db.query(TherapySession).filter(TherapySession.id.in_(ids))
        by_id = {s.id: s for s in apply_tenant_filter(query, TherapySession, tenant).all()}

        missing = [session_id for session_id in ids if session_id not in by_id]
        if missing:
            db.rollback()
            raise PersistenceError(f"Sessions {missing} not found for batch update")

        try:
            updated = 0
            for session_id, patch in updates:
                if _apply_patch(by_id[session_id], patch):
                    updated += 1
            _finish(db, commit)
            return updated
        except SQLAlchemyError as e:
            logger.exception(f"Failed to update session batch of {len(updates)}: {e}")
            db.rollback()
            raise PersistenceError("Failed to update sessions") from e

    @staticmethod
    def delete(db: Session, session_id: int, tenant: TenantContext, commit: bool = True) -> bool:
        """Physically delete one session and its notifications. Returns False if not found."""
        session = SessionStore.find_by_id(db, session_id, tenant)
        if session is None:
            return False

        try:
            db.query(Notification).filter(
                Notification.related_session_id == session_id
            ).delete(synchronize_session="fetch")
            db.delete(session)
            _finish(db, commit)
            return True
        except SQLAlchemyError as e:
            logger.exception(f"Failed to delete session {session_id}: {e}")
            db.rollback()
            raise PersistenceError("Failed to delete session") from e

    @staticmethod
    def delete_series(db: Session, anchor_id: int, tenant: TenantContext, commit: bool = True) -> int:
        """
        Physically delete an anchor, its follow-ups and their notifications.

        Returns:
            Number of sessions deleted (0 if the series is not visible to the tenant)
        """
        series = SessionStore.find_series_by_anchor_id(db, anchor_id, tenant)
        if not series:
            return 0

        ids = [s.id for s in series]
        try:
            db.query(Notification).filter(
                Notification.related_session_id.in_(ids)
            ).delete(synchronize_session="fetch")
            # Follow-ups reference the anchor, so delete them first
            for session in sorted(series, key=lambda s: s.series_order, reverse=True):
                db.delete(session)
                db.flush()
            _finish(db, commit)
            return len(ids)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to delete series {anchor_id}: {e}")
            db.rollback()
            raise PersistenceError("Failed to delete session series") from e

"""
Test configuration and shared fixtures for the session scheduling test suite.

Uses an in-memory SQLite database. Each test gets a fresh schema created
from the SQLAlchemy metadata, so tests are fully isolated.
"""

import os

# Keep the application engine off any real database during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from auth.tenant_context import TenantContext
from core.database import Base
from models import Clinic, User, Patient, NotificationSetting
from services.jwt_service import jwt_service, TokenPayload


@pytest.fixture
def db_engine():
    """
    Create a fresh in-memory database for one test.

    StaticPool keeps a single connection so the FastAPI test client (which
    runs handlers in worker threads) sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session configured like the application's SessionLocal."""
    TestingSession = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = TestingSession()

    yield session

    session.close()


# ===== Factories =====

@pytest.fixture
def make_clinic(db_session):
    """Factory creating a clinic."""
    def _make(name: str = "Test Clinic") -> Clinic:
        clinic = Clinic(name=name, is_active=True, timezone="UTC")
        db_session.add(clinic)
        db_session.commit()
        return clinic
    return _make


@pytest.fixture
def make_staff(db_session):
    """Factory creating a user (staff, clinic admin or system admin)."""
    counter = {"n": 0}

    def _make(
        clinic: Optional[Clinic],
        role: str = "staff",
        first_name: str = "Terry",
        last_name: str = "Therapist",
        job_title: Optional[str] = "Physical Therapist",
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            clinic_id=clinic.id if clinic else None,
            email=f"user{counter['n']}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
            job_title=job_title,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_patient(db_session):
    """Factory creating a patient."""
    def _make(
        clinic: Clinic,
        first_name: str = "Pat",
        last_name: str = "Patient",
        email: Optional[str] = "pat@example.com",
        phone: Optional[str] = "+15550100",
        is_deleted: bool = False,
    ) -> Patient:
        patient = Patient(
            clinic_id=clinic.id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            is_deleted=is_deleted,
        )
        db_session.add(patient)
        db_session.commit()
        return patient
    return _make


@pytest.fixture
def make_reminder_setting(db_session):
    """Factory creating an appointment reminder setting."""
    def _make(
        clinic: Clinic,
        timing_hours: int = 24,
        channels: Optional[list] = None,
        enabled: bool = True,
        template: Optional[str] = None,
    ) -> NotificationSetting:
        setting = NotificationSetting(
            clinic_id=clinic.id,
            notification_type="appointment_reminder",
            enabled=enabled,
            timing_hours=timing_hours,
            channels=channels if channels is not None else ["email"],
            template=template,
        )
        db_session.add(setting)
        db_session.commit()
        return setting
    return _make


# ===== Common scenario =====

@pytest.fixture
def clinic(make_clinic) -> Clinic:
    return make_clinic("Riverside Physio")


@pytest.fixture
def other_clinic(make_clinic) -> Clinic:
    return make_clinic("Hillside Physio")


@pytest.fixture
def therapist(make_staff, clinic) -> User:
    return make_staff(clinic)


@pytest.fixture
def patient(make_patient, clinic) -> Patient:
    return make_patient(clinic)


@pytest.fixture
def tenant(clinic) -> TenantContext:
    return TenantContext.for_clinic(clinic.id)


@pytest.fixture
def future_start() -> datetime:
    """A start time well in the future, on the hour."""
    start = datetime.now(timezone.utc) + timedelta(days=10)
    return start.replace(minute=0, second=0, microsecond=0)


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user."""
    def _headers(user: User) -> dict:
        token = jwt_service.create_access_token(TokenPayload(
            sub=str(user.id),
            email=user.email,
            role=user.role,
            clinic_id=user.clinic_id,
            name=user.full_name,
        ))
        return {"Authorization": f"Bearer {token}"}
    return _headers

"""
Create the default reminder settings (24h and 48h by email) for clinics.

Run after onboarding a clinic, or once for every active clinic:

    python scripts/seed_notification_settings.py            # all active clinics
    python scripts/seed_notification_settings.py 3 7        # clinics 3 and 7

Clinics that already have a reminder at one of the default timings keep it.
"""
import logging
import sys
import os
from typing import List, Optional, Sequence

# Add the parent directory to sys.path to allow imports from src
sys.path.append(os.path.join(os.path.dirname(__file__), '../src'))

from sqlalchemy.orm import Session

from core.database import SessionLocal
from models import Clinic
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def seed_notification_settings(db: Session, clinic_ids: Optional[Sequence[int]] = None) -> int:
    """
    Initialize default reminder settings for the given clinics (default: all active).

    Returns:
        Number of settings created
    """
    query = db.query(Clinic)
    if clinic_ids:
        query = query.filter(Clinic.id.in_(list(clinic_ids)))
    else:
        query = query.filter(Clinic.is_active == True)  # noqa: E712

    created = 0
    for clinic in query.order_by(Clinic.id).all():
        settings = NotificationService.initialize_clinic_notifications(db, clinic.id)
        logger.info(f"Clinic {clinic.id} ({clinic.name}): {len(settings)} settings created")
        created += len(settings)
    return created


def main(argv: List[str]):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        clinic_ids = [int(arg) for arg in argv]
    except ValueError:
        print("Usage: seed_notification_settings.py [clinic_id ...]")
        sys.exit(2)

    db = SessionLocal()
    try:
        created = seed_notification_settings(db, clinic_ids)
        print(f"Done: {created} notification settings created.")
    except Exception as e:
        print(f"Error seeding notification settings: {e}")
        sys.exit(1)
    finally:
        db.close()

if __name__ == "__main__":
    main(sys.argv[1:])

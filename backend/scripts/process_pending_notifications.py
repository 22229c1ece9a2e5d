"""
Deliver due notifications once.

Normally the NotificationDispatchScheduler (services/notification_dispatch_scheduler.py)
does this hourly when ENABLE_NOTIFICATION_SCHEDULER is set. This script is for
cron-based deployments and manual runs:

    python scripts/process_pending_notifications.py
"""
import logging
import sys
import os

# Add the parent directory to sys.path to allow imports from src
sys.path.append(os.path.join(os.path.dirname(__file__), '../src'))

from core.database import SessionLocal
from services.notification_service import NotificationService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def main():
    print("Processing pending notifications...")
    db = SessionLocal()
    try:
        summary = NotificationService.process_pending_notifications(db)
        print(f"Done: {summary.sent} sent, {summary.failed} failed.")
    except Exception as e:
        print(f"Error processing notifications: {e}")
        sys.exit(1)
    finally:
        db.close()

if __name__ == "__main__":
    main()

# Package initialization
# Import all models to ensure relationships are properly established
from .clinic import Clinic
from .user import User
from .patient import Patient
from .therapy_session import TherapySession
from .notification import Notification
from .notification_setting import NotificationSetting

__all__ = [
    "Clinic",
    "User",
    "Patient",
    "TherapySession",
    "Notification",
    "NotificationSetting",
]

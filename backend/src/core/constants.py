"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 2000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
# Note: production URLs should be added via FRONTEND_URL environment variable
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite) - localhost
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Session series defaults
DEFAULT_SESSION_DURATION_MINUTES = 60
DEFAULT_FOLLOW_UP_COUNT = 8
MIN_FOLLOW_UP_COUNT = 1
MAX_FOLLOW_UP_COUNT = 50  # A series therefore holds at most 51 sessions

# Roles
ROLE_SYSTEM_ADMIN = "system_admin"
ROLE_CLINIC_ADMIN = "clinic_admin"
ROLE_STAFF = "staff"

# Roles allowed to be assigned as the therapist of a session
STAFF_ELIGIBLE_ROLES = [ROLE_STAFF, ROLE_CLINIC_ADMIN]

# Roles allowed to use the session scheduling API
SCHEDULING_ROLES = [ROLE_CLINIC_ADMIN, ROLE_STAFF, ROLE_SYSTEM_ADMIN]

# Job titles considered "therapist" roles (used for display/assignment hints)
THERAPIST_JOB_TITLES = [
    "Physical Therapist",
    "Occupational Therapist",
    "Speech Therapist",
    "Massage Therapist",
    "Sports Therapist",
    "Rehabilitation Therapist",
    "Chiropractor",
]

# Notifications
DEFAULT_NOTIFICATION_CHANNEL = "email"
NOTIFICATION_DISPATCH_BATCH_SIZE = 100  # Max notifications delivered per dispatch run
NOTIFICATION_SCHEDULER_MAX_INSTANCES = 1  # Prevent overlapping scheduler runs

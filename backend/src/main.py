# pyright: reportMissingTypeStubs=false
"""
Physio Sessions Backend API

A FastAPI application for scheduling physical-therapy sessions across
clinics.

Features:
- Recurring session series (weekly, bi-weekly, monthly)
- Cascade rescheduling of a session and all later sessions of its series
- Single-session and whole-series cancellation
- Patient reminders and notices queued in the notifications table
- PostgreSQL database with SQLAlchemy ORM
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import sessions
from api.responses import error_body
from core.config import ENABLE_NOTIFICATION_SCHEDULER
from core.constants import CORS_ORIGINS
from core.exceptions import SchedulingError
from services.notification_dispatch_scheduler import (
    start_notification_dispatch_scheduler, stop_notification_dispatch_scheduler
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Physio Sessions Backend API")

    if ENABLE_NOTIFICATION_SCHEDULER:
        try:
            await start_notification_dispatch_scheduler()
        except Exception as e:
            logger.exception(f"Failed to start notification dispatch scheduler: {e}")
    else:
        logger.info("Notification dispatch scheduler disabled")

    yield

    if ENABLE_NOTIFICATION_SCHEDULER:
        try:
            await stop_notification_dispatch_scheduler()
        except Exception as e:
            logger.exception(f"Error stopping notification dispatch scheduler: {e}")

    logger.info("Shutting down Physio Sessions Backend API")


# Create FastAPI application
app = FastAPI(
    title="Physio Sessions Backend",
    description="Session series scheduling for physical therapy clinics",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    sessions.router,
    prefix="/api/sessions",
    tags=["sessions"],
    responses={
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Resource not found"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Physio Sessions Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}")
    else:
        logger.info(f"Rejected {request.method} {request.url.path}: {exc.error_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.error_code),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters are reported as 400 with the standard envelope."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid value for {location}: {first.get('msg')}" if location else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=error_body(message, "validation_error"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Authentication and routing errors in the standard envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), "http_error"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_body("Internal server error", "internal_error"),
    )

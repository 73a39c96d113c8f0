"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from vanpool_booking.config import settings
from vanpool_booking.api import api_router
from vanpool_booking.database import init_database, close_database
from vanpool_booking.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from vanpool_booking.middleware.error_handler import error_response
from vanpool_booking.schemas.common import HealthStatus
from vanpool_booking.utils.exceptions import ValidationError, VanpoolError
from vanpool_booking.utils.logging_config import setup_logging

APP_VERSION = "1.0.0"

# Set up logging
setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file=settings.log_file or ("logs/vanpool.log" if settings.environment == "production" else None),
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Vanpool Booking Platform")
    await init_database()
    yield
    logger.info("Shutting down Vanpool Booking Platform")
    await close_database()


app = FastAPI(
    title="Vanpool Booking Platform API",
    description="""
    ## Vanpool Booking Platform

    Seat reservations for vans travelling to scheduled events.

    ### Key Features

    * **Reservation queue**: first come, first served seats with an ordered waitlist
    * **Duplicate names**: one active seat per full name unless an admin grants an exception
    * **Events**: vans are attached to events, closed when boarding ends and their cost split among riders
    * **Waitlist migration**: closing a van moves its waitlist to the next open van of the event

    ### Error Handling

    ```json
    {
      "error": {
        "code": "duplicate_name",
        "category": "conflict",
        "message": "Human readable error message",
        "details": {"full_name": "Eve Adams"}
      },
      "error_id": "...",
      "timestamp": "..."
    }
    ```
    """,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "reservations",
            "description": "Public queue: join, release and view a van's riders"
        },
        {
            "name": "admin",
            "description": "Vans, events, overrides, payments and the audit trail"
        },
        {
            "name": "health",
            "description": "System health endpoints"
        }
    ],
    lifespan=lifespan,
)


@app.exception_handler(VanpoolError)
async def vanpool_error_handler(request: Request, exc: VanpoolError):
    """Render platform errors raised by the services."""
    error_id = str(uuid4())
    log = logger.warning if exc.category.value != "unexpected" else logger.error
    log(
        f"{exc.error_code.value} [{error_id}] {request.method} {request.url.path}: {exc.message}",
        extra={"error_id": error_id, "error_code": exc.error_code.value},
    )
    return error_response(exc, error_id)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Render request parsing failures in the same envelope as service errors."""
    field_errors: dict = {}
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors.setdefault(field_path, []).append(error["msg"])
    return error_response(
        ValidationError("Request validation failed", field_errors=field_errors),
        str(uuid4()),
    )


# Middleware stack (the last one added runs first)
app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

app.add_middleware(
    LoggingMiddleware,
    log_requests=settings.enable_request_logging,
    log_responses=settings.enable_request_logging,
)

if settings.debug:
    # Development: Allow all origins for easier development
    cors_origins = ["*"]
    cors_allow_credentials = False
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

# Include API routes
app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "Vanpool Booking Platform API",
        "version": APP_VERSION,
        "docs_url": "/docs",
        "status": "operational"
    }


@app.get("/health", tags=["health"], response_model=HealthStatus)
async def health_check():
    """Liveness check for uptime monitoring."""
    return HealthStatus(
        status="healthy",
        service="vanpool-booking-platform",
        version=APP_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

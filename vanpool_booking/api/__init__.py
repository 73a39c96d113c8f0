"""API endpoints for the Vanpool Booking platform."""

from fastapi import APIRouter

from vanpool_booking.schemas.common import ErrorResponse
from .reservations import router as reservations_router
from .admin_overrides import router as admin_overrides_router
from .admin_vans import router as admin_vans_router
from .admin_events import router as admin_events_router
from .admin_reservations import router as admin_reservations_router

# Error envelope documented once for every route
ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Resource not found"},
    409: {"model": ErrorResponse, "description": "Conflicting state or concurrent change"},
    422: {"model": ErrorResponse, "description": "Invalid input or status transition"},
}

# Create main API router
api_router = APIRouter(prefix="/api", responses=ERROR_RESPONSES)

# Include all routers
api_router.include_router(reservations_router)
api_router.include_router(admin_overrides_router)
api_router.include_router(admin_vans_router)
api_router.include_router(admin_events_router)
api_router.include_router(admin_reservations_router)

__all__ = ["api_router"]

"""
Pydantic schemas shared by the services and the HTTP layer.
"""

from .audit import AuditEventResponse
from .common import ErrorDetail, ErrorResponse, HealthStatus, SuccessResponse
from .event import (
    AttachVanRequest,
    EventCreate,
    EventResponse,
    EventUpdate,
    EventVanResponse,
    EventVanUpdate,
    EventVanWithVan,
    EventWithVans,
)
from .override import OverrideCreate, OverrideResponse
from .reservation import (
    JoinRequest,
    JoinResponse,
    PaymentUpdate,
    QueueEvent,
    QueueEventVan,
    QueueVan,
    QueueView,
    ReleaseResponse,
    ReservationResponse,
    RosterRow,
)
from .van import VanCreate, VanResponse, VanUpdate, VanWithCounts

__all__ = [
    "AuditEventResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthStatus",
    "SuccessResponse",
    "AttachVanRequest",
    "EventCreate",
    "EventResponse",
    "EventUpdate",
    "EventVanResponse",
    "EventVanUpdate",
    "EventVanWithVan",
    "EventWithVans",
    "OverrideCreate",
    "OverrideResponse",
    "JoinRequest",
    "JoinResponse",
    "PaymentUpdate",
    "QueueEvent",
    "QueueEventVan",
    "QueueVan",
    "QueueView",
    "ReleaseResponse",
    "ReservationResponse",
    "RosterRow",
    "VanCreate",
    "VanResponse",
    "VanUpdate",
    "VanWithCounts",
]

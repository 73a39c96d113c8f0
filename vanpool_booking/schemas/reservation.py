"""
Reservation and queue schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import EventStatus, EventVanStatus, ReservationStatus


class JoinRequest(BaseModel):
    """Schema for joining a van queue."""

    full_name: str = Field(..., max_length=255, description="Rider's full name")
    email: Optional[str] = Field(None, max_length=255, description="Optional contact address")
    van: Optional[str] = Field(None, description="Van id or name; the default van when omitted")


class ReservationResponse(BaseModel):
    """Schema for reservation response."""

    id: UUID
    van_id: UUID
    event_id: Optional[UUID]
    full_name: str
    email: Optional[str] = None
    status: ReservationStatus
    position: int
    joined_at: datetime
    released_at: Optional[datetime]
    charged_amount: Decimal
    has_paid: bool

    model_config = ConfigDict(from_attributes=True)


class QueueVan(BaseModel):
    """Van summary shown above a queue."""

    id: UUID
    name: str
    capacity: int
    departure_timestamp: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class QueueEventVan(BaseModel):
    """One of the vans serving the same event."""

    id: UUID
    van_id: UUID
    name: str
    capacity: int
    status: EventVanStatus
    van_cost: Decimal
    per_passenger_cost: Optional[Decimal]


class QueueEvent(BaseModel):
    """Event summary; only present while the event is in progress."""

    id: UUID
    name: str
    event_date: date
    status: EventStatus
    total_cost: Decimal
    van_status: EventVanStatus
    van_cost: Decimal
    per_passenger_cost: Optional[Decimal]
    vans: List[QueueEventVan] = []


class QueueView(BaseModel):
    """Ordered partition of a van's active reservations."""

    van: QueueVan
    confirmed: List[ReservationResponse] = []
    waitlisted: List[ReservationResponse] = []
    event: Optional[QueueEvent] = None


class JoinResponse(BaseModel):
    """Schema for a successful join."""

    status: ReservationStatus
    message: str
    reservation: ReservationResponse
    queue: QueueView


class ReleaseResponse(BaseModel):
    """Schema for a successful release."""

    message: str
    reservation: ReservationResponse
    queue: QueueView


class PaymentUpdate(BaseModel):
    """Schema for toggling the paid flag."""

    has_paid: bool


class RosterRow(BaseModel):
    """One line of a van roster export."""

    full_name: str
    email: Optional[str] = None
    status: ReservationStatus
    position: int
    joined_at: datetime
    released_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

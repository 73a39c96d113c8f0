"""
Event schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import EventStatus, EventVanStatus
from .van import VanResponse

EVENT_DATE_FORMAT = "%d/%m/%Y"


def parse_event_date(value):
    """Accept ``dd/mm/yyyy`` text (or an actual date) for event dates."""
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), EVENT_DATE_FORMAT).date()
        except ValueError:
            raise ValueError("Event date must use the dd/mm/yyyy format")
    raise ValueError("Event date must use the dd/mm/yyyy format")


class EventCreate(BaseModel):
    """Schema for creating a new event."""

    name: str = Field(..., min_length=1, max_length=255, description="Event name")
    event_date: date = Field(..., description="Event day, dd/mm/yyyy")
    status: Optional[EventStatus] = Field(None, description="Initial status, planned when omitted")

    @field_validator("event_date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_event_date(v)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Event name must not be blank")
        return v.strip()


class EventUpdate(BaseModel):
    """Schema for updating an existing event."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_date: Optional[date] = None
    status: Optional[EventStatus] = None
    total_cost: Optional[Decimal] = Field(None, ge=0)

    @field_validator("event_date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_event_date(v)


class EventResponse(BaseModel):
    """Schema for event response."""

    id: UUID
    name: str
    event_date: date
    status: EventStatus
    total_cost: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AttachVanRequest(BaseModel):
    """Schema for attaching a van to an event."""

    van_id: UUID
    van_cost: Decimal = Field(default=Decimal("0"), ge=0)
    status: Optional[EventVanStatus] = Field(None, description="open (default) or holding")


class EventVanUpdate(BaseModel):
    """Schema for changing a van's status or cost inside an event."""

    status: Optional[EventVanStatus] = None
    van_cost: Optional[Decimal] = Field(None, ge=0)


class EventVanResponse(BaseModel):
    """Schema for a van-to-event association."""

    id: UUID
    event_id: UUID
    van_id: UUID
    status: EventVanStatus
    van_cost: Decimal
    per_passenger_cost: Optional[Decimal]
    closed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class EventVanWithVan(EventVanResponse):
    """Association plus the van it points at."""

    van: VanResponse


class EventWithVans(EventResponse):
    """Event row of the admin listing; ``total_cost`` is the live sum of van costs."""

    vans: List[EventVanWithVan] = []

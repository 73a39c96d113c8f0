"""
Van schemas for request/response validation.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class VanCreate(BaseModel):
    """Schema for creating a new van."""

    name: str = Field(..., max_length=255, description="Display name, unique across vans")
    capacity: Optional[int] = Field(None, description="Seats; defaults to the configured van capacity")
    departure_timestamp: Optional[datetime] = Field(None, description="Scheduled departure")
    event_id: Optional[UUID] = Field(None, description="Event to attach the van to")


class VanUpdate(BaseModel):
    """Schema for updating a van. Send ``departure_timestamp: null`` to clear it."""

    name: Optional[str] = Field(None, max_length=255)
    capacity: Optional[int] = None
    departure_timestamp: Optional[datetime] = None


class VanResponse(BaseModel):
    """Schema for van response."""

    id: UUID
    name: str
    capacity: int
    departure_timestamp: Optional[datetime]
    default_event_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VanWithCounts(VanResponse):
    """Van row of the admin listing."""

    confirmed_count: int = 0
    waitlisted_count: int = 0

"""
Duplicate-name override schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class OverrideCreate(BaseModel):
    """Schema for adding or renewing an override."""

    full_name: str = Field(..., max_length=255)
    reason: Optional[str] = Field(None, description="Why the name may hold several seats")
    duration_hours: Optional[float] = Field(None, description="Lifetime in hours; never expires when omitted")


class OverrideResponse(BaseModel):
    """Schema for override response."""

    id: UUID
    full_name: str
    reason: Optional[str]
    expires_at: Optional[datetime]
    created_at: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

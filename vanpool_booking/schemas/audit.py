"""
Audit trail schemas.
"""

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..models import ReservationEventType


class AuditEventResponse(BaseModel):
    """Schema for one audit record."""

    id: UUID
    event_type: ReservationEventType
    payload: Dict[str, Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

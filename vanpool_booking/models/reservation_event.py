"""
ReservationEvent model for the append-only audit trail.
"""

import enum
from typing import Any, Dict

from sqlalchemy import JSON, Enum
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ReservationEventType(str, enum.Enum):
    """Enumeration for audited domain facts."""
    JOIN = "join"
    WAITLIST = "waitlist"
    RELEASE = "release"
    DUPLICATE_BLOCKED = "duplicate_blocked"
    OVERRIDE_ADDED = "override_added"
    OVERRIDE_REMOVED = "override_removed"
    CAPACITY_UPDATED = "capacity_updated"
    VAN_CREATED = "van_created"
    VAN_REMOVED = "van_removed"
    VAN_ATTACHED = "van_attached"
    VAN_DETACHED = "van_detached"
    VAN_STATUS_CHANGED = "van_status_changed"
    VAN_COST_UPDATED = "van_cost_updated"
    WAITLIST_MIGRATED = "waitlist_migrated"
    EVENT_STATUS_CHANGED = "event_status_changed"


class ReservationEvent(Base):
    """Immutable fact recorded for later review."""

    __tablename__ = "reservation_events"

    event_type: Mapped[ReservationEventType] = mapped_column(
        Enum(
            ReservationEventType,
            name="reservation_event_type",
            values_callable=lambda types: [event_type.value for event_type in types],
        ),
        nullable=False,
        index=True
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        """String representation of the audit record."""
        return (
            f"<ReservationEvent(id={self.id}, event_type={self.event_type.value}, "
            f"created_at={self.created_at})>"
        )

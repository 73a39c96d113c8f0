"""
EventVan model linking a van to the event it serves.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .event import Event
    from .van import Van


class EventVanStatus(str, enum.Enum):
    """Enumeration for the status of a van inside an event."""
    OPEN = "open"
    FULL = "full"
    CLOSED = "closed"
    HOLDING = "holding"


class EventVan(Base):
    """Association row carrying the van's status and cost for an event."""

    __tablename__ = "event_vans"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # A van serves one event at a time
    van_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vans.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )

    status: Mapped[EventVanStatus] = mapped_column(
        Enum(
            EventVanStatus,
            name="event_van_status",
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        default=EventVanStatus.OPEN,
        nullable=False,
        index=True
    )

    van_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00")
    )

    # Only populated while the van is closed
    per_passenger_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="event_vans")
    van: Mapped["Van"] = relationship("Van", back_populates="event_links")

    __table_args__ = (
        CheckConstraint("van_cost >= 0", name="ck_event_vans_van_cost_non_negative"),
        CheckConstraint(
            "per_passenger_cost IS NULL OR per_passenger_cost >= 0",
            name="ck_event_vans_per_passenger_cost_non_negative",
        ),
    )

    @property
    def is_closed(self) -> bool:
        """Check if the van's roster is frozen."""
        return self.status == EventVanStatus.CLOSED

    @property
    def admits_confirmations(self) -> bool:
        """Closed and holding vans only take riders onto the waitlist."""
        return self.status not in (EventVanStatus.CLOSED, EventVanStatus.HOLDING)

    def __repr__(self) -> str:
        """String representation of the association."""
        return (
            f"<EventVan(id={self.id}, event_id={self.event_id}, "
            f"van_id={self.van_id}, status={self.status.value})>"
        )

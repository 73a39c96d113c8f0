"""
Event model for the trips vans are assigned to.
"""

import enum
from datetime import date
from decimal import Decimal
from typing import List, TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .event_van import EventVan


class EventStatus(str, enum.Enum):
    """Enumeration for event status."""
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    FINALIZED = "finalized"


# Forward-only lifecycle; finalized is terminal
EVENT_STATUS_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.PLANNED: frozenset({EventStatus.PLANNED, EventStatus.IN_PROGRESS}),
    EventStatus.IN_PROGRESS: frozenset({EventStatus.IN_PROGRESS, EventStatus.FINALIZED}),
    EventStatus.FINALIZED: frozenset({EventStatus.FINALIZED}),
}


def can_transition_event_status(current: EventStatus, target: EventStatus) -> bool:
    """Check whether an event may move from ``current`` to ``target``."""
    return target in EVENT_STATUS_TRANSITIONS[current]


class Event(Base):
    """Event model grouping the vans of one trip."""

    __tablename__ = "events"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[EventStatus] = mapped_column(
        Enum(
            EventStatus,
            name="event_status",
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        default=EventStatus.PLANNED,
        nullable=False,
        index=True
    )

    # Denormalized sum of the attached vans' costs
    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00")
    )

    # Relationships
    event_vans: Mapped[List["EventVan"]] = relationship(
        "EventVan",
        back_populates="event",
        cascade="all",
        passive_deletes=True,
        order_by="EventVan.created_at",
    )

    __table_args__ = (
        CheckConstraint("total_cost >= 0", name="ck_events_total_cost_non_negative"),
    )

    @property
    def is_finalized(self) -> bool:
        """Check if the event is frozen."""
        return self.status == EventStatus.FINALIZED

    def __repr__(self) -> str:
        """String representation of the event."""
        return (
            f"<Event(id={self.id}, name='{self.name}', "
            f"date={self.event_date}, status={self.status.value})>"
        )

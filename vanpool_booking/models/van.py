"""
Van model for the seats offered on each trip.
"""

import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .event_van import EventVan
    from .reservation import Reservation

MIN_VAN_CAPACITY = 1
MAX_VAN_CAPACITY = 64


class Van(Base):
    """Van model holding the seat capacity riders queue for."""

    __tablename__ = "vans"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    departure_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True
    )

    # Weak link to the event the van currently serves
    default_event_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Relationships
    event_links: Mapped[List["EventVan"]] = relationship(
        "EventVan",
        back_populates="van",
        cascade="all",
        passive_deletes=True,
    )

    reservations: Mapped[List["Reservation"]] = relationship(
        "Reservation",
        back_populates="van",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            f"capacity >= {MIN_VAN_CAPACITY} AND capacity <= {MAX_VAN_CAPACITY}",
            name="ck_vans_capacity_range",
        ),
    )

    def __repr__(self) -> str:
        """String representation of the van."""
        return f"<Van(id={self.id}, name='{self.name}', capacity={self.capacity})>"

"""
Reservation model for riders holding or waiting for a seat.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .van import Van


class ReservationStatus(str, enum.Enum):
    """Enumeration for reservation status."""
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.WAITLISTED)

_ACTIVE_ONLY = text("status IN ('confirmed', 'waitlisted')")


class Reservation(Base):
    """Reservation model for a rider's place in a van queue."""

    __tablename__ = "reservations"

    van_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vans.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    event_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Normalized full name
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Optional contact address, trimmed; empty input is stored as NULL
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[ReservationStatus] = mapped_column(
        Enum(
            ReservationStatus,
            name="reservation_status",
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        index=True
    )

    # 1-based, FIFO order inside the (van, status) partition
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Payment tracking
    charged_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00")
    )
    has_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    van: Mapped["Van"] = relationship("Van", back_populates="reservations")

    __table_args__ = (
        CheckConstraint("position > 0", name="ck_reservations_position_positive"),
        CheckConstraint("charged_amount >= 0", name="ck_reservations_charged_amount_non_negative"),
        Index(
            "uq_reservations_active_van_status_position",
            "van_id",
            "status",
            "position",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
    )

    @property
    def is_active(self) -> bool:
        """Check if the reservation still holds or waits for a seat."""
        return self.status in ACTIVE_STATUSES

    def set_charge(self, amount: Decimal) -> None:
        """Charge the rider, resetting the paid flag when the amount moves."""
        if self.charged_amount is None or Decimal(self.charged_amount) != amount:
            self.charged_amount = amount
            self.has_paid = False

    def __repr__(self) -> str:
        """String representation of the reservation."""
        return (
            f"<Reservation(id={self.id}, van_id={self.van_id}, full_name='{self.full_name}', "
            f"status={self.status.value}, position={self.position})>"
        )

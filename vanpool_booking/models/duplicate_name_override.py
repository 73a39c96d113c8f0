"""
DuplicateNameOverride model for admin exceptions to the one-seat-per-name rule.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, as_utc, utcnow


class DuplicateNameOverride(Base):
    """Lets a normalized full name hold more than one active reservation."""

    __tablename__ = "duplicate_name_overrides"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Null means the override never expires
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_active_at(self, moment: datetime) -> bool:
        """Check if the override applies at ``moment``."""
        expires_at = as_utc(self.expires_at)
        return expires_at is None or expires_at > moment

    @property
    def is_active(self) -> bool:
        """Check if the override applies right now."""
        return self.is_active_at(utcnow())

    def __repr__(self) -> str:
        """String representation of the override."""
        return (
            f"<DuplicateNameOverride(id={self.id}, full_name='{self.full_name}', "
            f"expires_at={self.expires_at})>"
        )

"""
Repositories wrapping the queries each service needs.
"""

from .audit_repository import AuditRepository
from .event_repository import EventRepository
from .override_repository import OverrideRepository
from .reservation_repository import ReservationRepository
from .van_repository import VanRepository

__all__ = [
    "AuditRepository",
    "EventRepository",
    "OverrideRepository",
    "ReservationRepository",
    "VanRepository",
]

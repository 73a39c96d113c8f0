"""
Business logic services for the Vanpool Booking platform.
"""

from .audit_service import AuditLog
from .duplicate_policy import DuplicatePolicy
from .event_service import EventService
from .queue_service import QueueService
from .reservation_service import ReservationService
from .van_service import VanService

__all__ = [
    "AuditLog",
    "DuplicatePolicy",
    "EventService",
    "QueueService",
    "ReservationService",
    "VanService",
]

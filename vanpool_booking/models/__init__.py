"""
Database models for the Vanpool booking platform.
"""

from .base import Base
from .van import Van, MIN_VAN_CAPACITY, MAX_VAN_CAPACITY
from .event import Event, EventStatus, can_transition_event_status
from .event_van import EventVan, EventVanStatus
from .reservation import Reservation, ReservationStatus, ACTIVE_STATUSES
from .duplicate_name_override import DuplicateNameOverride
from .reservation_event import ReservationEvent, ReservationEventType

__all__ = [
    "Base",
    "Van",
    "MIN_VAN_CAPACITY",
    "MAX_VAN_CAPACITY",
    "Event",
    "EventStatus",
    "can_transition_event_status",
    "EventVan",
    "EventVanStatus",
    "Reservation",
    "ReservationStatus",
    "ACTIVE_STATUSES",
    "DuplicateNameOverride",
    "ReservationEvent",
    "ReservationEventType",
]

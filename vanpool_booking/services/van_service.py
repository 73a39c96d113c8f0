"""
Van administration.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import (
    MAX_VAN_CAPACITY,
    MIN_VAN_CAPACITY,
    EventVan,
    EventVanStatus,
    ReservationEventType,
    Van,
)
from ..repositories import EventRepository, ReservationRepository, VanRepository
from ..schemas.van import VanWithCounts
from ..utils.exceptions import (
    EventFinalizedError,
    ValidationError,
    VanHasActivePassengersError,
    VanNameTakenError,
)
from .audit_service import AuditLog
from .base import transaction
from .event_service import EventService

logger = logging.getLogger(__name__)

VAN_FIELDS = {"name", "capacity", "departure_timestamp"}


def validate_capacity(value: Any) -> int:
    """Capacity must be a whole number of seats within the supported range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            "Capacity must be an integer",
            field_errors={"capacity": ["must be an integer"]},
        )
    if not MIN_VAN_CAPACITY <= value <= MAX_VAN_CAPACITY:
        raise ValidationError(
            f"Capacity must be between {MIN_VAN_CAPACITY} and {MAX_VAN_CAPACITY}",
            field_errors={"capacity": [f"must be between {MIN_VAN_CAPACITY} and {MAX_VAN_CAPACITY}"]},
        )
    return value


def validate_van_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Van name is required", field_errors={"name": ["required"]})
    return value.strip()


class VanService:
    """Service for creating, editing and removing vans."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.vans = VanRepository(session)
        self.events = EventRepository(session)
        self.reservations = ReservationRepository(session)
        self.lifecycle = EventService(session)
        self.audit = AuditLog(session)

    async def create_van(
        self,
        name: str,
        capacity: Optional[int] = None,
        departure_timestamp: Optional[datetime] = None,
        event_id: Optional[UUID] = None,
    ) -> Van:
        """Create a van, optionally attaching it (at zero cost) to an event."""
        name = validate_van_name(name)
        capacity = validate_capacity(capacity if capacity is not None else get_settings().default_van_capacity)

        async with transaction(self.session, "create_van"):
            if await self.vans.name_taken(name):
                raise VanNameTakenError(name)

            event = await self.lifecycle.get_unlocked_event(event_id) if event_id else None

            van = await self.vans.add(
                Van(
                    name=name,
                    capacity=capacity,
                    departure_timestamp=departure_timestamp,
                    default_event_id=event.id if event else None,
                )
            )
            if event is not None:
                await self.events.add_event_van(
                    EventVan(event_id=event.id, van_id=van.id, status=EventVanStatus.OPEN)
                )
                await self.lifecycle.recompute_total(event)

        logger.info(f"Created van {van.id} '{van.name}' with capacity {van.capacity}")
        await self.audit.record(
            ReservationEventType.VAN_CREATED,
            {
                "van_id": str(van.id),
                "name": van.name,
                "capacity": van.capacity,
                "event_id": str(event_id) if event_id else None,
            },
        )
        return van

    async def update_van(self, van_id: UUID, changes: Dict[str, Any]) -> Van:
        """
        Apply a partial update. ``departure_timestamp`` may be set to None
        to clear it; a capacity change re-derives the van's open/full status.
        """
        changes = {key: value for key, value in changes.items() if key in VAN_FIELDS}
        if not changes:
            raise ValidationError("No changes supplied")

        if "name" in changes:
            changes["name"] = validate_van_name(changes["name"])
        if "capacity" in changes:
            changes["capacity"] = validate_capacity(changes["capacity"])

        async with transaction(self.session, "update_van"):
            van = await self.lifecycle.get_van(van_id, for_update=True)
            previous_capacity = van.capacity

            if "name" in changes and changes["name"] != van.name:
                if await self.vans.name_taken(changes["name"], exclude_id=van.id):
                    raise VanNameTakenError(changes["name"])
                van.name = changes["name"]

            if "departure_timestamp" in changes:
                van.departure_timestamp = changes["departure_timestamp"]

            if "capacity" in changes and changes["capacity"] != van.capacity:
                event_van = await self.events.get_event_van_for_van(van.id, for_update=True)
                await self.lifecycle.queue.ensure_event_unlocked(event_van)
                van.capacity = changes["capacity"]

            await self.session.flush()
            if van.capacity != previous_capacity:
                await self.lifecycle.queue.sync_van_status(van)

        if van.capacity != previous_capacity:
            logger.info(f"Van {van.id} capacity {previous_capacity} -> {van.capacity}")
            await self.audit.record(
                ReservationEventType.CAPACITY_UPDATED,
                {"van_id": str(van.id), "from": previous_capacity, "to": van.capacity},
            )
        return van

    async def delete_van(self, van_id: UUID) -> None:
        """Delete a van that no longer holds active reservations, along with its history."""
        async with transaction(self.session, "delete_van"):
            van = await self.lifecycle.get_van(van_id, for_update=True)

            active = await self.reservations.count_active(van.id)
            if active:
                raise VanHasActivePassengersError(str(van.id), active)

            event_van = await self.events.get_event_van_for_van(van.id, for_update=True)
            event = None
            if event_van is not None:
                event = await self.lifecycle.get_event(event_van.event_id, for_update=True)
                if event.is_finalized:
                    raise EventFinalizedError(str(event.id))
                await self.events.delete_event_van(event_van)

            await self.reservations.delete_cancelled(van.id)
            name = van.name
            await self.vans.delete(van)

            if event is not None:
                await self.lifecycle.recompute_total(event)

        logger.info(f"Deleted van {van_id} '{name}'")
        await self.audit.record(
            ReservationEventType.VAN_REMOVED,
            {"van_id": str(van_id), "name": name},
        )

    async def list_vans(self) -> List[VanWithCounts]:
        rows = await self.vans.list_with_counts()
        return [
            VanWithCounts(
                id=van.id,
                name=van.name,
                capacity=van.capacity,
                departure_timestamp=van.departure_timestamp,
                default_event_id=van.default_event_id,
                created_at=van.created_at,
                updated_at=van.updated_at,
                confirmed_count=confirmed,
                waitlisted_count=waitlisted,
            )
            for van, confirmed, waitlisted in rows
        ]

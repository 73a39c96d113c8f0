"""
Event and van lifecycle: event status machine, van attachment, cost
allocation and waitlist migration.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    Event,
    EventStatus,
    EventVan,
    EventVanStatus,
    ReservationEventType,
    ReservationStatus,
    Van,
    can_transition_event_status,
)
from ..models.base import utcnow
from ..repositories import EventRepository, ReservationRepository, VanRepository
from ..schemas.event import EventVanWithVan, EventWithVans
from ..utils.exceptions import (
    EventFinalizedError,
    EventNotFoundError,
    EventVanNotFoundError,
    InvalidTransitionError,
    NoConfirmedPassengersError,
    ValidationError,
    VanAlreadyAttachedError,
    VanCostRequiredError,
    VanNotFoundError,
)
from .audit_service import AuditLog
from .base import transaction
from .queue_service import QueueService, lowest_free_position

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

EVENT_FIELDS = {"name", "event_date", "status", "total_cost"}
ATTACHABLE_STATUSES = (EventVanStatus.OPEN, EventVanStatus.HOLDING)


def to_money(value: Any, field_name: str) -> Decimal:
    """Parse a non-negative amount rounded to cents."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number", field_errors={field_name: ["not a number"]})
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field_name} must be zero or more", field_errors={field_name: ["must be >= 0"]})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def split_cost(van_cost: Decimal, passengers: int) -> Decimal:
    """Per-passenger share of a van cost, rounded half-up to cents."""
    return (Decimal(van_cost) / passengers).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class MigrationResult:
    """Waitlisted riders moved off a closing van."""

    target_van_id: Optional[UUID] = None
    moved: List[Dict[str, Any]] = field(default_factory=list)


class EventService:
    """Service for events and the vans attached to them."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = EventRepository(session)
        self.vans = VanRepository(session)
        self.reservations = ReservationRepository(session)
        self.queue = QueueService(session)
        self.audit = AuditLog(session)

    # Helpers shared with the van admin

    async def get_event(self, event_id: UUID, for_update: bool = False) -> Event:
        event = await self.events.get(event_id, for_update=for_update)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def get_unlocked_event(self, event_id: UUID) -> Event:
        """Fetch an event that still accepts changes."""
        event = await self.get_event(event_id, for_update=True)
        if event.is_finalized:
            raise EventFinalizedError(str(event_id))
        return event

    async def get_van(self, van_id: UUID, for_update: bool = False) -> Van:
        van = await self.vans.get(van_id, for_update=for_update)
        if van is None:
            raise VanNotFoundError(str(van_id))
        return van

    async def recompute_total(self, event: Event) -> Decimal:
        """Store the sum of the event's van costs as its total."""
        event.total_cost = await self.events.sum_van_costs(event.id)
        await self.session.flush()
        return event.total_cost

    # Events

    async def create_event(
        self,
        name: str,
        event_date: date,
        status: Optional[EventStatus] = None,
    ) -> Event:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Event name is required", field_errors={"name": ["required"]})
        if not isinstance(event_date, date):
            raise ValidationError("Event date is required", field_errors={"event_date": ["required"]})

        async with transaction(self.session, "create_event"):
            event = await self.events.add(
                Event(
                    name=name,
                    event_date=event_date,
                    status=EventStatus(status) if status else EventStatus.PLANNED,
                    total_cost=Decimal("0.00"),
                )
            )

        logger.info(f"Created event {event.id} '{event.name}' on {event.event_date}")
        return event

    async def update_event(self, event_id: UUID, changes: Dict[str, Any]) -> Event:
        """
        Apply a partial update to an event.

        Status changes follow the forward-only machine. A finalized event
        accepts nothing except restating its finalized status.
        """
        changes = {key: value for key, value in changes.items() if key in EVENT_FIELDS}
        if not changes:
            raise ValidationError("No changes supplied")

        async with transaction(self.session, "update_event"):
            event = await self.get_event(event_id, for_update=True)
            previous_status = event.status

            target_status = changes.get("status")
            if target_status is not None:
                target_status = EventStatus(target_status)
                if not can_transition_event_status(event.status, target_status):
                    raise InvalidTransitionError("event", event.status.value, target_status.value)

            if event.is_finalized:
                if set(changes) - {"status"}:
                    raise EventFinalizedError(str(event_id))
                return event

            if "name" in changes:
                name = (changes["name"] or "").strip()
                if not name:
                    raise ValidationError("Event name must not be blank", field_errors={"name": ["blank"]})
                event.name = name

            if "event_date" in changes:
                if not isinstance(changes["event_date"], date):
                    raise ValidationError("Event date is required", field_errors={"event_date": ["required"]})
                event.event_date = changes["event_date"]

            if changes.get("total_cost") is not None:
                # Manual value; replaced at the next van cost change
                event.total_cost = to_money(changes["total_cost"], "total_cost")

            if target_status is not None:
                event.status = target_status

            await self.session.flush()

        if event.status != previous_status:
            logger.info(f"Event {event.id} moved {previous_status.value} -> {event.status.value}")
            await self.audit.record(
                ReservationEventType.EVENT_STATUS_CHANGED,
                {"event_id": str(event.id), "from": previous_status.value, "to": event.status.value},
            )
        return event

    async def list_events_with_vans(self) -> List[EventWithVans]:
        """Events by date with their vans; the total is the live sum of van costs."""
        events = await self.events.list_with_vans()
        listing = []
        for event in events:
            vans = [EventVanWithVan.model_validate(link) for link in event.event_vans]
            total = sum((Decimal(link.van_cost) for link in event.event_vans), Decimal("0.00"))
            listing.append(
                EventWithVans(
                    id=event.id,
                    name=event.name,
                    event_date=event.event_date,
                    status=event.status,
                    total_cost=total.quantize(CENT),
                    created_at=event.created_at,
                    updated_at=event.updated_at,
                    vans=vans,
                )
            )
        return listing

    # Attachment

    async def attach_van(
        self,
        event_id: UUID,
        van_id: UUID,
        van_cost: Any = Decimal("0"),
        status: Optional[EventVanStatus] = None,
    ) -> EventVan:
        """Attach a van to an event and tag its reservations with the event."""
        cost = to_money(van_cost if van_cost is not None else 0, "van_cost")
        initial_status = EventVanStatus(status) if status else EventVanStatus.OPEN
        if initial_status not in ATTACHABLE_STATUSES:
            raise ValidationError(
                "A van can only be attached as open or holding",
                field_errors={"status": ["must be open or holding"]},
            )

        async with transaction(self.session, "attach_van"):
            event = await self.get_unlocked_event(event_id)
            van = await self.get_van(van_id, for_update=True)

            existing = await self.events.get_event_van_for_van(van.id)
            if existing is not None:
                raise VanAlreadyAttachedError(str(van.id), str(existing.event_id))

            event_van = await self.events.add_event_van(
                EventVan(event_id=event.id, van_id=van.id, status=initial_status, van_cost=cost)
            )

            van.default_event_id = event.id
            for reservation in await self.reservations.list_for_van(van.id):
                reservation.event_id = event.id
            await self.session.flush()

            await self.queue.sync_van_status(van, event_van)
            await self.recompute_total(event)

        logger.info(f"Attached van {van.id} to event {event.id}")
        await self.audit.record(
            ReservationEventType.VAN_ATTACHED,
            {
                "event_id": str(event.id),
                "van_id": str(van.id),
                "van_cost": str(cost),
                "status": event_van.status.value,
            },
        )
        return event_van

    async def detach_van(self, event_id: UUID, van_id: UUID) -> None:
        """Remove a van from an event, clearing event links and charges on its reservations."""
        async with transaction(self.session, "detach_van"):
            event = await self.get_unlocked_event(event_id)
            van = await self.get_van(van_id, for_update=True)

            event_van = await self.events.get_event_van(event.id, van.id, for_update=True)
            if event_van is None:
                raise EventVanNotFoundError(str(event_id), str(van_id))

            await self.events.delete_event_van(event_van)

            if van.default_event_id == event.id:
                van.default_event_id = None
            for reservation in await self.reservations.list_for_van(van.id, for_update=True):
                reservation.event_id = None
                reservation.charged_amount = Decimal("0.00")
                reservation.has_paid = False
            await self.session.flush()

            await self.recompute_total(event)

        logger.info(f"Detached van {van_id} from event {event_id}")
        await self.audit.record(
            ReservationEventType.VAN_DETACHED,
            {"event_id": str(event_id), "van_id": str(van_id)},
        )

    # Van status and cost inside an event

    async def update_event_van(
        self,
        event_id: UUID,
        van_id: UUID,
        status: Optional[EventVanStatus] = None,
        van_cost: Any = None,
    ) -> EventVan:
        """
        Change a van's status and/or cost inside an event.

        - ``closed`` splits the cost over the confirmed riders, charges them
          and migrates the waitlist to the event's earliest open van.
        - ``open`` reopens: charges are cleared and open/full is re-derived.
        - ``holding`` pauses the van and clears charges like a reopen.
        - ``full`` is derived from occupancy and cannot be set by hand.

        A cost change on a closed van re-splits the cost immediately.
        """
        if status is None and van_cost is None:
            raise ValidationError("Provide a status or a van cost to update")

        target = EventVanStatus(status) if status is not None else None
        if target == EventVanStatus.FULL:
            raise InvalidTransitionError("van", "manual", EventVanStatus.FULL.value)
        cost = to_money(van_cost, "van_cost") if van_cost is not None else None

        migration = MigrationResult()

        async with transaction(self.session, "update_event_van"):
            event = await self.get_unlocked_event(event_id)
            van = await self.get_van(van_id, for_update=True)

            event_van = await self.events.get_event_van(event.id, van.id, for_update=True)
            if event_van is None:
                raise EventVanNotFoundError(str(event_id), str(van_id))

            previous_status = event_van.status
            previous_cost = Decimal(event_van.van_cost)

            if cost is not None:
                event_van.van_cost = cost

            if target == EventVanStatus.CLOSED:
                migration = await self.close_van(event, event_van, van)
            elif target == EventVanStatus.OPEN:
                await self.clear_charges(event_van, van)
                event_van.status = EventVanStatus.OPEN
                await self.queue.sync_van_status(van, event_van)
            elif target == EventVanStatus.HOLDING:
                await self.clear_charges(event_van, van)
                event_van.status = EventVanStatus.HOLDING
            elif event_van.is_closed:
                await self.charge_confirmed(event_van, van)
            else:
                await self.queue.sync_van_status(van, event_van)

            await self.session.flush()
            await self.recompute_total(event)

        if cost is not None and cost != previous_cost:
            await self.audit.record(
                ReservationEventType.VAN_COST_UPDATED,
                {
                    "event_id": str(event.id),
                    "van_id": str(van.id),
                    "from": str(previous_cost),
                    "to": str(cost),
                    "per_passenger_cost": str(event_van.per_passenger_cost) if event_van.per_passenger_cost is not None else None,
                },
            )
        if target is not None:
            logger.info(f"Van {van.id} in event {event.id}: {previous_status.value} -> {event_van.status.value}")
            await self.audit.record(
                ReservationEventType.VAN_STATUS_CHANGED,
                {
                    "event_id": str(event.id),
                    "van_id": str(van.id),
                    "from": previous_status.value,
                    "to": event_van.status.value,
                    "per_passenger_cost": str(event_van.per_passenger_cost) if event_van.per_passenger_cost is not None else None,
                },
            )
        if migration.moved:
            await self.audit.record(
                ReservationEventType.WAITLIST_MIGRATED,
                {
                    "event_id": str(event.id),
                    "from_van_id": str(van.id),
                    "to_van_id": str(migration.target_van_id),
                    "moved": migration.moved,
                },
            )
        return event_van

    async def charge_confirmed(self, event_van: EventVan, van: Van, reset_paid: bool = False) -> Decimal:
        """Split the van cost over its confirmed riders and charge each of them.

        ``reset_paid`` marks every rider unpaid, as a fresh close does; otherwise
        only riders whose amount moves lose their paid flag.
        """
        confirmed = await self.reservations.list_for_van(
            van.id, [ReservationStatus.CONFIRMED], for_update=True
        )
        if not confirmed:
            raise NoConfirmedPassengersError(str(van.id))

        share = split_cost(event_van.van_cost, len(confirmed))
        event_van.per_passenger_cost = share
        for reservation in confirmed:
            reservation.set_charge(share)
            if reset_paid:
                reservation.has_paid = False
            reservation.event_id = event_van.event_id
        await self.session.flush()
        return share

    async def clear_charges(self, event_van: EventVan, van: Van) -> None:
        """Drop the split and every confirmed rider's charge; nothing is owed while not closed."""
        event_van.per_passenger_cost = None
        event_van.closed_at = None
        confirmed = await self.reservations.list_for_van(
            van.id, [ReservationStatus.CONFIRMED], for_update=True
        )
        for reservation in confirmed:
            reservation.charged_amount = Decimal("0.00")
            reservation.has_paid = False
        await self.session.flush()

    async def close_van(self, event: Event, event_van: EventVan, van: Van) -> MigrationResult:
        """Freeze a van's roster, charge its riders and move its waitlist on."""
        confirmed_count = await self.reservations.count(van.id, ReservationStatus.CONFIRMED)
        if confirmed_count == 0:
            raise NoConfirmedPassengersError(str(van.id))
        if Decimal(event_van.van_cost) <= 0:
            raise VanCostRequiredError(str(van.id))

        was_closed = event_van.is_closed
        event_van.status = EventVanStatus.CLOSED
        if not was_closed or event_van.closed_at is None:
            event_van.closed_at = utcnow()

        await self.charge_confirmed(event_van, van, reset_paid=not was_closed)
        return await self.migrate_waitlist(event, van)

    async def migrate_waitlist(self, event: Event, van: Van) -> MigrationResult:
        """
        Move a closed van's waitlisted riders to the event's earliest open van.

        Riders are confirmed while the target has free seats and appended to
        its waitlist after that. Without an open van they stay where they are.
        """
        result = MigrationResult()
        waitlisted = await self.reservations.list_for_van(
            van.id, [ReservationStatus.WAITLISTED], for_update=True
        )
        if not waitlisted:
            return result

        link = await self.events.first_open_event_van(event.id, exclude_van_id=van.id)
        if link is None:
            logger.info(f"No open van in event {event.id}; {len(waitlisted)} riders stay on van {van.id}")
            return result

        target_van = await self.get_van(link.van_id, for_update=True)
        target_link = await self.events.get_event_van_for_van(target_van.id, for_update=True)
        if target_link is None or target_link.status != EventVanStatus.OPEN:
            return result

        confirmed_positions = await self.reservations.positions(target_van.id, ReservationStatus.CONFIRMED)
        last_waitlist_position = await self.reservations.max_position(target_van.id, ReservationStatus.WAITLISTED)

        for reservation in waitlisted:
            reservation.van_id = target_van.id
            reservation.event_id = event.id
            if len(confirmed_positions) < target_van.capacity:
                position = lowest_free_position(confirmed_positions)
                confirmed_positions.append(position)
                reservation.status = ReservationStatus.CONFIRMED
            else:
                last_waitlist_position += 1
                position = last_waitlist_position
            reservation.position = position
            result.moved.append(
                {
                    "reservation_id": str(reservation.id),
                    "status": reservation.status.value,
                    "position": position,
                }
            )

        await self.session.flush()
        await self.queue.sync_van_status(target_van, target_link)

        result.target_van_id = target_van.id
        logger.info(f"Migrated {len(result.moved)} waitlisted riders from van {van.id} to van {target_van.id}")
        return result

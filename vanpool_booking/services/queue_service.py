"""
Queue engine: joins, releases and the per-van queue view.
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import (
    EventStatus,
    EventVan,
    EventVanStatus,
    Reservation,
    ReservationEventType,
    ReservationStatus,
    Van,
)
from ..models.base import utcnow
from ..repositories import EventRepository, ReservationRepository, VanRepository
from ..schemas.reservation import (
    JoinResponse,
    QueueEvent,
    QueueEventVan,
    QueueVan,
    QueueView,
    ReleaseResponse,
    ReservationResponse,
)
from ..utils.exceptions import (
    DuplicateNameError,
    EventFinalizedError,
    ReservationNotFoundError,
    VanClosedError,
    VanNotFoundError,
)
from ..utils.logging_config import mask_name
from ..utils.retry import retry_on_concurrency_error
from .audit_service import AuditLog
from .base import transaction
from .duplicate_policy import DuplicatePolicy, validate_full_name

logger = logging.getLogger(__name__)

VanRef = Union[UUID, str, None]


def lowest_free_position(taken: Sequence[int]) -> int:
    """Smallest positive position not in ``taken``."""
    position = 1
    for value in sorted(set(taken)):
        if value == position:
            position += 1
        elif value > position:
            break
    return position


def derive_open_full(confirmed_count: int, capacity: int) -> EventVanStatus:
    """A van is full once its confirmed riders reach its (positive) capacity."""
    if capacity > 0 and confirmed_count >= capacity:
        return EventVanStatus.FULL
    return EventVanStatus.OPEN


def _parse_van_ref(van_ref: VanRef) -> Union[UUID, str]:
    if isinstance(van_ref, UUID):
        return van_ref
    text = (van_ref or "").strip()
    if not text:
        return get_settings().default_van_name
    try:
        return UUID(text)
    except ValueError:
        return text


class QueueService:
    """Service for the public reservation queue."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.vans = VanRepository(session)
        self.events = EventRepository(session)
        self.reservations = ReservationRepository(session)
        self.policy = DuplicatePolicy(session)
        self.audit = AuditLog(session)

    # Van resolution

    async def ensure_van_by_name(self, name: str) -> Van:
        """Fetch a van by name, creating it with the configured defaults if needed."""
        van = await self.vans.get_by_name(name, for_update=True)
        if van is not None:
            return van

        settings = get_settings()
        van = await self.vans.add(
            Van(
                name=name,
                capacity=settings.default_van_capacity,
                departure_timestamp=utcnow() + timedelta(minutes=settings.default_departure_offset_minutes),
            )
        )
        logger.info(f"Created van '{name}' on demand with capacity {van.capacity}")
        return van

    async def resolve_van(self, van_ref: VanRef, for_update: bool = False) -> Van:
        """
        Turn a van reference into a van row.

        An id must point at an existing van. A name is created on demand, and
        no reference at all means the configured default van.
        """
        ref = _parse_van_ref(van_ref)
        if isinstance(ref, UUID):
            van = await self.vans.get(ref, for_update=for_update)
            if van is None:
                raise VanNotFoundError(str(ref))
            return van
        return await self.ensure_van_by_name(ref)

    # Status derivation

    async def event_is_finalized(self, event_van: Optional[EventVan]) -> bool:
        if event_van is None:
            return False
        event = await self.events.get(event_van.event_id)
        return event is not None and event.is_finalized

    async def ensure_event_unlocked(self, event_van: Optional[EventVan]) -> None:
        """Refuse roster changes on a van whose event is finalized."""
        if await self.event_is_finalized(event_van):
            raise EventFinalizedError(str(event_van.event_id))

    async def sync_van_status(self, van: Van, event_van: Optional[EventVan] = None) -> Optional[EventVan]:
        """
        Re-derive open/full for the van's association. Closed and holding are
        left alone, and so is anything attached to a finalized event.
        """
        if event_van is None:
            event_van = await self.events.get_event_van_for_van(van.id)
        if event_van is None or event_van.status in (EventVanStatus.CLOSED, EventVanStatus.HOLDING):
            return event_van
        if await self.event_is_finalized(event_van):
            return event_van

        confirmed = await self.reservations.count(van.id, ReservationStatus.CONFIRMED)
        status = derive_open_full(confirmed, van.capacity)
        if event_van.status != status:
            logger.debug(f"Van {van.id} association moves {event_van.status.value} -> {status.value}")
            event_van.status = status
            await self.session.flush()
        return event_van

    # Queue view

    async def build_queue_view(self, van: Van) -> QueueView:
        confirmed = await self.reservations.list_for_van(van.id, [ReservationStatus.CONFIRMED])
        waitlisted = await self.reservations.list_for_van(van.id, [ReservationStatus.WAITLISTED])

        event_summary = None
        event_van = await self.events.get_event_van_for_van(van.id)
        if event_van is not None:
            event = await self.events.get(event_van.event_id)
            if event is not None and event.status == EventStatus.IN_PROGRESS:
                links = await self.events.list_event_vans(event.id)
                event_summary = QueueEvent(
                    id=event.id,
                    name=event.name,
                    event_date=event.event_date,
                    status=event.status,
                    total_cost=event.total_cost,
                    van_status=event_van.status,
                    van_cost=event_van.van_cost,
                    per_passenger_cost=event_van.per_passenger_cost,
                    vans=[
                        QueueEventVan(
                            id=link.id,
                            van_id=link.van_id,
                            name=link.van.name,
                            capacity=link.van.capacity,
                            status=link.status,
                            van_cost=link.van_cost,
                            per_passenger_cost=link.per_passenger_cost,
                        )
                        for link in links
                    ],
                )

        return QueueView(
            van=QueueVan.model_validate(van),
            confirmed=[ReservationResponse.model_validate(r) for r in confirmed],
            waitlisted=[ReservationResponse.model_validate(r) for r in waitlisted],
            event=event_summary,
        )

    async def get_queue(self, van_ref: VanRef = None) -> QueueView:
        async with transaction(self.session, "get_queue"):
            van = await self.resolve_van(van_ref)
            queue = await self.build_queue_view(van)
        return queue

    # Join / release

    @retry_on_concurrency_error()
    async def join(self, van_ref: VanRef, full_name: Optional[str], email: Optional[str] = None) -> JoinResponse:
        """
        Put a rider on a van.

        The rider is confirmed at the lowest free seat while confirmed riders
        are below capacity and the van still admits confirmations; otherwise
        they go to the back of the waitlist.

        A van whose event is finalized takes no new riders.
        """
        name = validate_full_name(full_name)
        email = email.strip() if email and email.strip() else None
        van_id: Optional[UUID] = None

        try:
            async with transaction(self.session, "join"):
                await self.reservations.lock_name(name)
                await self.policy.check(name)

                van = await self.resolve_van(van_ref, for_update=True)
                van_id = van.id
                event_van = await self.events.get_event_van_for_van(van.id, for_update=True)
                await self.ensure_event_unlocked(event_van)

                confirmed_positions = await self.reservations.positions(van.id, ReservationStatus.CONFIRMED)
                admits = event_van is None or event_van.admits_confirmations

                if admits and len(confirmed_positions) < van.capacity:
                    status = ReservationStatus.CONFIRMED
                    position = lowest_free_position(confirmed_positions)
                else:
                    status = ReservationStatus.WAITLISTED
                    position = await self.reservations.max_position(van.id, ReservationStatus.WAITLISTED) + 1

                reservation = await self.reservations.add(
                    Reservation(
                        van_id=van.id,
                        event_id=van.default_event_id,
                        full_name=name,
                        email=email,
                        status=status,
                        position=position,
                        joined_at=utcnow(),
                        charged_amount=Decimal("0.00"),
                        has_paid=False,
                    )
                )

                if status == ReservationStatus.CONFIRMED:
                    await self.sync_van_status(van, event_van)
                    message = f"You're confirmed in seat {position}."
                else:
                    message = f"No seat is free right now. You're number {position} on the waitlist."

                response = JoinResponse(
                    status=status,
                    message=message,
                    reservation=ReservationResponse.model_validate(reservation),
                    queue=await self.build_queue_view(van),
                )

        except DuplicateNameError as exc:
            existing = exc.existing_reservation or {}
            await self.audit.record(
                ReservationEventType.DUPLICATE_BLOCKED,
                {
                    "full_name": name,
                    "van_id": str(van_id) if van_id else None,
                    "existing_reservation_id": existing.get("id"),
                },
            )
            raise

        logger.info(
            f"{mask_name(name)} joined van {reservation.van_id} as {status.value} #{position}"
        )
        await self.audit.record(
            ReservationEventType.JOIN if status == ReservationStatus.CONFIRMED else ReservationEventType.WAITLIST,
            {
                "reservation_id": str(reservation.id),
                "van_id": str(reservation.van_id),
                "event_id": str(reservation.event_id) if reservation.event_id else None,
                "full_name": name,
                "status": status.value,
                "position": position,
            },
        )
        return response

    async def release(self, reservation_id: UUID) -> ReleaseResponse:
        """
        Cancel an active reservation.

        Nobody is renumbered and the waitlist is not promoted: the freed seat
        goes to whoever joins next.
        """
        async with transaction(self.session, "release"):
            reservation = await self.reservations.get(reservation_id, for_update=True)
            if reservation is None or not reservation.is_active:
                raise ReservationNotFoundError(str(reservation_id))

            van = await self.vans.get(reservation.van_id, for_update=True)
            if van is None:
                raise VanNotFoundError(str(reservation.van_id))

            event_van = await self.events.get_event_van_for_van(van.id, for_update=True)
            await self.ensure_event_unlocked(event_van)
            if event_van is not None and event_van.is_closed:
                raise VanClosedError(str(van.id))

            was_waitlisted = reservation.status == ReservationStatus.WAITLISTED
            reservation.status = ReservationStatus.CANCELLED
            reservation.released_at = utcnow()
            if not was_waitlisted:
                reservation.charged_amount = Decimal("0.00")
                reservation.has_paid = False
            await self.session.flush()

            if not was_waitlisted:
                await self.sync_van_status(van, event_van)

            if was_waitlisted:
                message = "You have left the waitlist."
            else:
                message = "Your seat was released and is now open for the next rider."

            response = ReleaseResponse(
                message=message,
                reservation=ReservationResponse.model_validate(reservation),
                queue=await self.build_queue_view(van),
            )

        await self.audit.record(
            ReservationEventType.RELEASE,
            {
                "reservation_id": str(reservation.id),
                "van_id": str(reservation.van_id),
                "full_name": reservation.full_name,
                "waitlist": was_waitlisted,
            },
        )
        return response

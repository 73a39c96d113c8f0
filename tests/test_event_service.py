"""Event lifecycle, van attachment, closing and waitlist migration."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from vanpool_booking.models import EventStatus, EventVanStatus, ReservationEventType, ReservationStatus
from vanpool_booking.repositories import ReservationRepository
from vanpool_booking.services import AuditLog
from vanpool_booking.services.event_service import split_cost, to_money
from vanpool_booking.utils.exceptions import (
    EventFinalizedError,
    EventNotFoundError,
    EventVanNotFoundError,
    InvalidTransitionError,
    NoConfirmedPassengersError,
    ValidationError,
    VanAlreadyAttachedError,
    VanCostRequiredError,
)


@pytest.fixture
async def event(event_service):
    return await event_service.create_event("Summer Trip", date(2026, 7, 1))


async def fill(queue_service, van, *names):
    return [await queue_service.join(van.id, name) for name in names]


class TestMoney:

    def test_split_rounds_half_up_to_cents(self):
        assert split_cost(Decimal("100"), 3) == Decimal("33.33")
        assert split_cost(Decimal("0.05"), 2) == Decimal("0.03")
        assert split_cost(Decimal("300"), 3) == Decimal("100.00")

    def test_to_money(self):
        assert to_money("12.345", "van_cost") == Decimal("12.35")
        assert to_money(0, "van_cost") == Decimal("0.00")

    @pytest.mark.parametrize("value", ["-1", "abc", "NaN"])
    def test_to_money_rejects_bad_amounts(self, value):
        with pytest.raises(ValidationError):
            to_money(value, "van_cost")


class TestEventStatus:

    @pytest.mark.asyncio
    async def test_planned_to_finalized_is_rejected(self, event_service, event):
        with pytest.raises(InvalidTransitionError):
            await event_service.update_event(event.id, {"status": EventStatus.FINALIZED})

    @pytest.mark.asyncio
    async def test_forward_path(self, event_service, session, event):
        # When
        await event_service.update_event(event.id, {"status": EventStatus.IN_PROGRESS})
        updated = await event_service.update_event(event.id, {"status": EventStatus.FINALIZED})

        # Then
        assert updated.status == EventStatus.FINALIZED
        records = await AuditLog(session).list_recent()
        assert records[0].event_type == ReservationEventType.EVENT_STATUS_CHANGED
        assert records[0].payload["to"] == "finalized"

    @pytest.mark.asyncio
    async def test_finalized_event_is_locked(self, event_service, van_service, event):
        # Given
        van = await van_service.create_van("Van A", capacity=2)
        event_id, van_id = event.id, van.id
        await event_service.update_event(event_id, {"status": EventStatus.IN_PROGRESS})
        await event_service.update_event(event_id, {"status": EventStatus.FINALIZED})

        # Then
        with pytest.raises(InvalidTransitionError):
            await event_service.update_event(event_id, {"status": EventStatus.IN_PROGRESS})
        with pytest.raises(EventFinalizedError):
            await event_service.update_event(event_id, {"name": "Renamed"})
        with pytest.raises(EventFinalizedError):
            await event_service.attach_van(event_id, van_id)

        unchanged = await event_service.update_event(event_id, {"status": EventStatus.FINALIZED})
        assert unchanged.status == EventStatus.FINALIZED

    @pytest.mark.asyncio
    async def test_empty_update_is_rejected(self, event_service, event):
        with pytest.raises(ValidationError):
            await event_service.update_event(event.id, {})

    @pytest.mark.asyncio
    async def test_unknown_event(self, event_service):
        with pytest.raises(EventNotFoundError):
            await event_service.update_event(uuid4(), {"name": "Nope"})


class TestAttachment:

    @pytest.mark.asyncio
    async def test_attach_tags_reservations_and_sums_total(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van_a = await van_service.create_van("Van A", capacity=2)
        van_b = await van_service.create_van("Van B", capacity=2)
        joined = await queue_service.join(van_a.id, "Alice")

        # When
        link = await event_service.attach_van(event.id, van_a.id, van_cost="150.50")
        await event_service.attach_van(event.id, van_b.id, van_cost="49.50", status=EventVanStatus.HOLDING)

        # Then
        assert link.status == EventVanStatus.OPEN
        assert event.total_cost == Decimal("200.00")
        reservation = await ReservationRepository(session).get(joined.reservation.id)
        assert reservation.event_id == event.id

        listing = await event_service.list_events_with_vans()
        assert listing[0].total_cost == Decimal("200.00")
        assert [(v.van.name, v.status) for v in listing[0].vans] == [
            ("Van A", EventVanStatus.OPEN),
            ("Van B", EventVanStatus.HOLDING),
        ]

    @pytest.mark.asyncio
    async def test_van_serves_one_event_at_a_time(self, event_service, van_service, event):
        other = await event_service.create_event("Winter Trip", date(2026, 12, 1))
        van = await van_service.create_van("Van A", capacity=2, event_id=event.id)

        with pytest.raises(VanAlreadyAttachedError):
            await event_service.attach_van(other.id, van.id)

    @pytest.mark.asyncio
    async def test_attach_as_closed_is_rejected(self, event_service, van_service, event):
        van = await van_service.create_van("Van A", capacity=2)

        with pytest.raises(ValidationError):
            await event_service.attach_van(event.id, van.id, status=EventVanStatus.CLOSED)

    @pytest.mark.asyncio
    async def test_detach_clears_links_and_charges(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await fill(queue_service, van, "Alice", "Bob")
        await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED, van_cost="90")

        # When
        await event_service.detach_van(event.id, van.id)

        # Then
        for reservation in await ReservationRepository(session).list_for_van(van.id):
            assert reservation.event_id is None
            assert reservation.charged_amount == Decimal("0.00")
            assert reservation.has_paid is False
        assert van.default_event_id is None
        assert event.total_cost == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_detach_unattached_van(self, event_service, van_service, event):
        van = await van_service.create_van("Van A", capacity=2)

        with pytest.raises(EventVanNotFoundError):
            await event_service.detach_van(event.id, van.id)


class TestClosingVans:

    @pytest.mark.asyncio
    async def test_close_splits_cost_over_confirmed_riders(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await event_service.update_event_van(event.id, van.id, van_cost="300")
        joined = await fill(queue_service, van, "Alice", "Bob", "Carol")

        # When
        link = await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED)

        # Then
        assert link.status == EventVanStatus.CLOSED
        assert link.per_passenger_cost == Decimal("100.00")
        assert link.closed_at is not None
        for result in joined:
            reservation = await ReservationRepository(session).get(result.reservation.id)
            assert reservation.charged_amount == Decimal("100.00")
            assert reservation.has_paid is False

    @pytest.mark.asyncio
    async def test_close_keeps_rounding_remainder(self, event_service, van_service, queue_service, session, event):
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await fill(queue_service, van, "Alice", "Bob", "Carol")

        await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED, van_cost="100")

        confirmed = await ReservationRepository(session).list_for_van(van.id, [ReservationStatus.CONFIRMED])
        assert [r.charged_amount for r in confirmed] == [Decimal("33.33")] * 3

    @pytest.mark.asyncio
    async def test_close_without_riders(self, event_service, van_service, event):
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)

        with pytest.raises(NoConfirmedPassengersError):
            await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED, van_cost="10")

    @pytest.mark.asyncio
    async def test_close_without_cost_rolls_back(self, event_service, van_service, queue_service, session, event):
        # Given
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await fill(queue_service, van, "Alice")

        # When
        with pytest.raises(VanCostRequiredError):
            await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED)

        # Then
        listing = await event_service.list_events_with_vans()
        assert listing[0].vans[0].status == EventVanStatus.OPEN

    @pytest.mark.asyncio
    async def test_manual_full_is_rejected(self, event_service, van_service, event):
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)

        with pytest.raises(InvalidTransitionError):
            await event_service.update_event_van(event.id, van.id, status=EventVanStatus.FULL)

    @pytest.mark.asyncio
    async def test_cost_change_on_closed_van_resplits(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van = await van_service.create_van("Van A", capacity=2, event_id=event.id)
        await fill(queue_service, van, "Alice", "Bob")
        await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED, van_cost="80")

        # When
        link = await event_service.update_event_van(event.id, van.id, van_cost="120")

        # Then
        assert link.status == EventVanStatus.CLOSED
        assert link.per_passenger_cost == Decimal("60.00")
        assert event.total_cost == Decimal("120.00")
        confirmed = await ReservationRepository(session).list_for_van(van.id, [ReservationStatus.CONFIRMED])
        assert {r.charged_amount for r in confirmed} == {Decimal("60.00")}

    @pytest.mark.asyncio
    async def test_reopen_and_hold_clear_charges(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van = await van_service.create_van("Van A", capacity=2, event_id=event.id)
        await fill(queue_service, van, "Alice", "Bob")
        await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED, van_cost="80")

        # When
        reopened = await event_service.update_event_van(event.id, van.id, status=EventVanStatus.OPEN)

        # Then
        assert reopened.status == EventVanStatus.FULL
        assert reopened.per_passenger_cost is None
        confirmed = await ReservationRepository(session).list_for_van(van.id, [ReservationStatus.CONFIRMED])
        assert {r.charged_amount for r in confirmed} == {Decimal("0.00")}

        # When
        held = await event_service.update_event_van(event.id, van.id, status=EventVanStatus.HOLDING)

        # Then
        assert held.status == EventVanStatus.HOLDING
        assert held.per_passenger_cost is None


class TestWaitlistMigration:

    @pytest.mark.asyncio
    async def test_waitlist_moves_to_earliest_open_van(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van_a = await van_service.create_van("Van A", capacity=1, event_id=event.id)
        van_b = await van_service.create_van("Van B", capacity=1, event_id=event.id)
        await van_service.create_van("Van C", capacity=5, event_id=event.id)
        await fill(queue_service, van_a, "Alice", "Bob", "Carol")

        # When
        await event_service.update_event_van(event.id, van_a.id, status=EventVanStatus.CLOSED, van_cost="50")

        # Then
        moved = await ReservationRepository(session).list_for_van(van_b.id)
        assert [(r.full_name, r.status, r.position) for r in moved] == [
            ("Bob", ReservationStatus.CONFIRMED, 1),
            ("Carol", ReservationStatus.WAITLISTED, 1),
        ]
        assert all(r.event_id == event.id for r in moved)
        assert await ReservationRepository(session).count(van_a.id, ReservationStatus.WAITLISTED) == 0

        listing = await event_service.list_events_with_vans()
        statuses = {v.van.name: v.status for v in listing[0].vans}
        assert statuses == {
            "Van A": EventVanStatus.CLOSED,
            "Van B": EventVanStatus.FULL,
            "Van C": EventVanStatus.OPEN,
        }

        records = await AuditLog(session).list_recent()
        migrated = [r for r in records if r.event_type == ReservationEventType.WAITLIST_MIGRATED]
        assert migrated[0].payload["to_van_id"] == str(van_b.id)
        assert len(migrated[0].payload["moved"]) == 2

    @pytest.mark.asyncio
    async def test_waitlist_stays_without_open_van(
        self, event_service, van_service, queue_service, session, event
    ):
        # Given
        van_a = await van_service.create_van("Van A", capacity=1, event_id=event.id)
        van_b = await van_service.create_van("Van B", capacity=1, event_id=event.id)
        await event_service.update_event_van(event.id, van_b.id, status=EventVanStatus.HOLDING)
        await fill(queue_service, van_a, "Alice", "Bob")

        # When
        await event_service.update_event_van(event.id, van_a.id, status=EventVanStatus.CLOSED, van_cost="50")

        # Then
        waitlisted = await ReservationRepository(session).list_for_van(van_a.id, [ReservationStatus.WAITLISTED])
        assert [r.full_name for r in waitlisted] == ["Bob"]

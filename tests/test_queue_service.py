"""Join, release and queue view behaviour of the reservation queue."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from vanpool_booking.models import EventStatus, EventVanStatus, ReservationStatus
from vanpool_booking.repositories import EventRepository, ReservationRepository, VanRepository
from vanpool_booking.services.queue_service import derive_open_full, lowest_free_position
from vanpool_booking.utils.exceptions import (
    EventFinalizedError,
    ReservationNotFoundError,
    ValidationError,
    VanClosedError,
    VanNotFoundError,
)


class TestPositionHelpers:

    def test_lowest_free_position_on_dense_positions(self):
        assert lowest_free_position([]) == 1
        assert lowest_free_position([1, 2, 3]) == 4

    def test_lowest_free_position_fills_gap(self):
        assert lowest_free_position([2, 3]) == 1
        assert lowest_free_position([1, 3, 4]) == 2

    def test_derive_open_full(self):
        assert derive_open_full(2, 2) == EventVanStatus.FULL
        assert derive_open_full(1, 2) == EventVanStatus.OPEN
        assert derive_open_full(0, 0) == EventVanStatus.OPEN


class TestJoin:

    @pytest.fixture
    async def van(self, van_service):
        return await van_service.create_van("Van A", capacity=2)

    @pytest.mark.asyncio
    async def test_first_come_first_served_until_capacity(self, queue_service, van):
        # When
        alice = await queue_service.join(van.id, "Alice")
        bob = await queue_service.join(van.id, "Bob")
        carol = await queue_service.join(van.id, "Carol")

        # Then
        assert (alice.status, alice.reservation.position) == (ReservationStatus.CONFIRMED, 1)
        assert (bob.status, bob.reservation.position) == (ReservationStatus.CONFIRMED, 2)
        assert (carol.status, carol.reservation.position) == (ReservationStatus.WAITLISTED, 1)
        assert alice.message == "You're confirmed in seat 1."
        assert carol.message == "No seat is free right now. You're number 1 on the waitlist."
        assert [r.full_name for r in carol.queue.confirmed] == ["Alice", "Bob"]
        assert [r.full_name for r in carol.queue.waitlisted] == ["Carol"]

    @pytest.mark.asyncio
    async def test_waitlist_appends_after_highest_position(self, queue_service, van):
        # Given
        for name in ("Alice", "Bob", "Carol", "Dave"):
            await queue_service.join(van.id, name)

        # When
        erin = await queue_service.join(van.id, "Erin")

        # Then
        assert erin.status == ReservationStatus.WAITLISTED
        assert erin.reservation.position == 3

    @pytest.mark.asyncio
    async def test_release_does_not_promote_and_next_join_takes_the_seat(self, queue_service, session, van):
        """The freed seat goes to whoever joins next, not to the waitlist."""
        # Given
        alice = await queue_service.join(van.id, "Alice")
        bob = await queue_service.join(van.id, "Bob")
        carol = await queue_service.join(van.id, "Carol")

        # When
        released = await queue_service.release(alice.reservation.id)

        # Then
        assert released.reservation.status == ReservationStatus.CANCELLED
        assert released.reservation.released_at is not None
        assert released.reservation.charged_amount == Decimal("0.00")
        assert released.message == "Your seat was released and is now open for the next rider."
        assert [r.full_name for r in released.queue.confirmed] == ["Bob"]
        assert released.queue.confirmed[0].position == bob.reservation.position
        assert [r.full_name for r in released.queue.waitlisted] == ["Carol"]
        assert released.queue.waitlisted[0].position == carol.reservation.position

        # When
        dana = await queue_service.join(van.id, "Dana")

        # Then
        assert (dana.status, dana.reservation.position) == (ReservationStatus.CONFIRMED, 1)
        carol_row = await ReservationRepository(session).get(carol.reservation.id)
        assert carol_row.status == ReservationStatus.WAITLISTED

    @pytest.mark.asyncio
    async def test_leaving_the_waitlist_keeps_other_positions(self, queue_service, van):
        # Given
        await queue_service.join(van.id, "Alice")
        await queue_service.join(van.id, "Bob")
        carol = await queue_service.join(van.id, "Carol")
        dave = await queue_service.join(van.id, "Dave")

        # When
        released = await queue_service.release(carol.reservation.id)

        # Then
        assert released.message == "You have left the waitlist."
        assert [(r.full_name, r.position) for r in released.queue.waitlisted] == [
            ("Dave", dave.reservation.position)
        ]

    @pytest.mark.asyncio
    async def test_release_twice_is_not_found(self, queue_service, van):
        alice = await queue_service.join(van.id, "Alice")
        await queue_service.release(alice.reservation.id)

        with pytest.raises(ReservationNotFoundError):
            await queue_service.release(alice.reservation.id)

    @pytest.mark.asyncio
    async def test_release_unknown_reservation(self, queue_service):
        with pytest.raises(ReservationNotFoundError):
            await queue_service.release(uuid4())

    @pytest.mark.asyncio
    async def test_short_name_is_rejected(self, queue_service, van):
        with pytest.raises(ValidationError):
            await queue_service.join(van.id, "  Al ")

    @pytest.mark.asyncio
    async def test_name_is_normalized(self, queue_service, van):
        joined = await queue_service.join(van.id, "  Alice    Smith ")
        assert joined.reservation.full_name == "Alice Smith"

    @pytest.mark.asyncio
    async def test_email_is_trimmed_and_blank_becomes_none(self, queue_service, van):
        alice = await queue_service.join(van.id, "Alice", " alice@example.com ")
        bob = await queue_service.join(van.id, "Bob", "   ")

        assert alice.reservation.email == "alice@example.com"
        assert bob.reservation.email is None


class TestVanResolution:

    @pytest.mark.asyncio
    async def test_unknown_van_id_is_not_found(self, queue_service):
        with pytest.raises(VanNotFoundError):
            await queue_service.join(uuid4(), "Alice")

    @pytest.mark.asyncio
    async def test_van_name_is_created_on_demand(self, queue_service):
        # When
        joined = await queue_service.join("Airport Shuttle", "Alice")

        # Then
        assert joined.queue.van.name == "Airport Shuttle"
        assert joined.queue.van.capacity == 15
        assert joined.queue.van.departure_timestamp is not None

    @pytest.mark.asyncio
    async def test_no_reference_uses_default_van(self, queue_service):
        view = await queue_service.get_queue(None)
        again = await queue_service.get_queue("")

        assert view.van.name == "Main Van"
        assert again.van.id == view.van.id

    @pytest.mark.asyncio
    async def test_uuid_text_resolves_existing_van(self, queue_service, van_service):
        van = await van_service.create_van("Van B", capacity=3)

        view = await queue_service.get_queue(str(van.id))

        assert view.van.id == van.id


class TestEventAwareQueue:

    @pytest.fixture
    async def event(self, event_service):
        return await event_service.create_event("Summer Trip", date(2026, 7, 1))

    @pytest.mark.asyncio
    async def test_join_tags_reservation_with_event_and_marks_van_full(
        self, queue_service, van_service, event_service, session, event
    ):
        # Given
        van = await van_service.create_van("Van A", capacity=1, event_id=event.id)

        # When
        joined = await queue_service.join(van.id, "Alice")

        # Then
        assert joined.reservation.event_id == event.id
        link = await EventRepository(session).get_event_van(event.id, van.id)
        assert link.status == EventVanStatus.FULL

        # When
        await queue_service.release(joined.reservation.id)

        # Then
        link = await EventRepository(session).get_event_van(event.id, van.id)
        assert link.status == EventVanStatus.OPEN

    @pytest.mark.asyncio
    async def test_holding_van_only_waitlists(self, queue_service, van_service, event_service, event):
        # Given
        van = await van_service.create_van("Van A", capacity=4, event_id=event.id)
        await event_service.update_event_van(event.id, van.id, status=EventVanStatus.HOLDING)

        # When
        joined = await queue_service.join(van.id, "Alice")

        # Then
        assert joined.status == ReservationStatus.WAITLISTED
        assert joined.reservation.position == 1

    @pytest.mark.asyncio
    async def test_release_from_closed_van_is_refused(self, queue_service, van_service, event_service, event):
        # Given
        van = await van_service.create_van("Van A", capacity=4, event_id=event.id)
        alice = await queue_service.join(van.id, "Alice")
        await event_service.update_event_van(event.id, van.id, status=EventVanStatus.CLOSED, van_cost="40")

        # When / Then
        with pytest.raises(VanClosedError):
            await queue_service.release(alice.reservation.id)

    @pytest.mark.asyncio
    async def test_queue_shows_event_summary_only_in_progress(
        self, queue_service, van_service, event_service, event
    ):
        # Given
        van = await van_service.create_van("Van A", capacity=4, event_id=event.id)
        await event_service.update_event_van(event.id, van.id, van_cost="120")

        # Then
        assert (await queue_service.get_queue(van.id)).event is None

        # When
        await event_service.update_event(event.id, {"status": EventStatus.IN_PROGRESS})
        view = await queue_service.get_queue(van.id)

        # Then
        assert view.event is not None
        assert view.event.van_status == EventVanStatus.OPEN
        assert view.event.van_cost == Decimal("120.00")
        assert [v.name for v in view.event.vans] == ["Van A"]


class TestFinalizedEventQueue:

    @pytest.fixture
    async def finalized_van(self, queue_service, van_service, event_service):
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))
        van = await van_service.create_van("Van A", capacity=4, event_id=event.id)
        await event_service.update_event(event.id, {"status": EventStatus.IN_PROGRESS})
        await event_service.update_event_van(event.id, van.id, van_cost="100")
        alice = await queue_service.join(van.id, "Alice")
        await queue_service.join(van.id, "Bob")
        await event_service.update_event(event.id, {"status": EventStatus.FINALIZED})
        return event.id, van.id, alice.reservation.id

    @pytest.mark.asyncio
    async def test_release_is_refused_and_status_stays(self, queue_service, session, finalized_van):
        # Given
        event_id, van_id, alice_id = finalized_van

        # When / Then
        with pytest.raises(EventFinalizedError):
            await queue_service.release(alice_id)

        alice = await ReservationRepository(session).get(alice_id)
        assert alice.status == ReservationStatus.CONFIRMED
        link = await EventRepository(session).get_event_van(event_id, van_id)
        assert link.status == EventVanStatus.OPEN

    @pytest.mark.asyncio
    async def test_join_is_refused(self, queue_service, session, finalized_van):
        # Given
        _, van_id, _ = finalized_van

        # When / Then
        with pytest.raises(EventFinalizedError):
            await queue_service.join(van_id, "Carol")

        assert await ReservationRepository(session).count(van_id, ReservationStatus.CONFIRMED) == 2

    @pytest.mark.asyncio
    async def test_status_sync_leaves_finalized_association_alone(self, queue_service, session, finalized_van):
        # Given
        event_id, van_id, _ = finalized_van
        van = await VanRepository(session).get(van_id)
        van.capacity = 2

        # When
        link = await queue_service.sync_van_status(van)

        # Then
        assert link.status == EventVanStatus.OPEN

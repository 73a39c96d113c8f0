"""Van administration: create, edit, delete and the listing with counts."""

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from vanpool_booking.models import EventStatus, EventVanStatus, ReservationEventType
from vanpool_booking.repositories import EventRepository, ReservationRepository, VanRepository
from vanpool_booking.services import AuditLog
from vanpool_booking.services.van_service import validate_capacity
from vanpool_booking.utils.exceptions import (
    EventFinalizedError,
    ValidationError,
    VanHasActivePassengersError,
    VanNameTakenError,
    VanNotFoundError,
)


class TestValidateCapacity:

    @pytest.mark.parametrize("value", [1, 15, 64])
    def test_accepts_range(self, value):
        assert validate_capacity(value) == value

    @pytest.mark.parametrize("value", [0, 65, -3, 2.5, "4", True, None])
    def test_rejects_everything_else(self, value):
        with pytest.raises(ValidationError):
            validate_capacity(value)


class TestCreateVan:

    @pytest.mark.asyncio
    async def test_defaults_and_audit(self, van_service, session):
        # When
        van = await van_service.create_van("  Van A ")

        # Then
        assert van.name == "Van A"
        assert van.capacity == 15
        assert van.default_event_id is None
        records = await AuditLog(session).list_recent()
        assert records[0].event_type == ReservationEventType.VAN_CREATED
        assert records[0].payload["name"] == "Van A"

    @pytest.mark.asyncio
    async def test_names_are_unique(self, van_service):
        await van_service.create_van("Van A", capacity=4)

        with pytest.raises(VanNameTakenError):
            await van_service.create_van("Van A", capacity=6)

    @pytest.mark.asyncio
    async def test_blank_name(self, van_service):
        with pytest.raises(ValidationError):
            await van_service.create_van("   ")

    @pytest.mark.asyncio
    async def test_create_inside_event(self, van_service, event_service, session):
        # Given
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))

        # When
        van = await van_service.create_van("Van A", capacity=4, event_id=event.id)

        # Then
        link = await EventRepository(session).get_event_van(event.id, van.id)
        assert link.status == EventVanStatus.OPEN
        assert van.default_event_id == event.id


class TestUpdateVan:

    @pytest.mark.asyncio
    async def test_capacity_change_rederives_status(self, van_service, event_service, queue_service, session):
        # Given
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await queue_service.join(van.id, "Alice")
        await queue_service.join(van.id, "Bob")

        # When
        await van_service.update_van(van.id, {"capacity": 2})

        # Then
        link = await EventRepository(session).get_event_van(event.id, van.id)
        assert link.status == EventVanStatus.FULL
        records = await AuditLog(session).list_recent()
        assert records[0].event_type == ReservationEventType.CAPACITY_UPDATED
        assert records[0].payload == {"van_id": str(van.id), "from": 3, "to": 2}

    @pytest.mark.asyncio
    async def test_rename_and_clear_departure(self, van_service):
        van = await van_service.create_van(
            "Van A", capacity=3, departure_timestamp=datetime(2026, 7, 1, 8, 0, tzinfo=timezone.utc)
        )

        updated = await van_service.update_van(van.id, {"name": "Van Z", "departure_timestamp": None})

        assert updated.name == "Van Z"
        assert updated.departure_timestamp is None

    @pytest.mark.asyncio
    async def test_rename_to_taken_name(self, van_service):
        await van_service.create_van("Van A", capacity=3)
        van_b = await van_service.create_van("Van B", capacity=3)

        with pytest.raises(VanNameTakenError):
            await van_service.update_van(van_b.id, {"name": "Van A"})

    @pytest.mark.asyncio
    async def test_requires_a_change(self, van_service):
        van = await van_service.create_van("Van A", capacity=3)

        with pytest.raises(ValidationError):
            await van_service.update_van(van.id, {"unknown": 1})

    @pytest.mark.asyncio
    async def test_unknown_van(self, van_service):
        with pytest.raises(VanNotFoundError):
            await van_service.update_van(uuid4(), {"capacity": 4})


class TestDeleteVan:

    @pytest.mark.asyncio
    async def test_van_with_riders_cannot_be_deleted(self, van_service, queue_service):
        van = await van_service.create_van("Van A", capacity=3)
        await queue_service.join(van.id, "Alice")

        with pytest.raises(VanHasActivePassengersError) as exc_info:
            await van_service.delete_van(van.id)
        assert exc_info.value.details["active_count"] == 1

    @pytest.mark.asyncio
    async def test_delete_removes_history_and_updates_total(
        self, van_service, event_service, queue_service, session
    ):
        # Given
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await event_service.update_event_van(event.id, van.id, van_cost="75")
        joined = await queue_service.join(van.id, "Alice")
        await queue_service.release(joined.reservation.id)
        van_id, event_id = van.id, event.id

        # When
        await van_service.delete_van(van_id)

        # Then
        assert await VanRepository(session).get(van_id) is None
        assert await ReservationRepository(session).list_for_van(van_id) == []
        refreshed = await EventRepository(session).get(event_id)
        assert refreshed.total_cost == 0

    @pytest.mark.asyncio
    async def test_van_of_finalized_event_is_locked(self, van_service, event_service):
        # Given
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await event_service.update_event(event.id, {"status": EventStatus.IN_PROGRESS})
        await event_service.update_event(event.id, {"status": EventStatus.FINALIZED})

        # When / Then
        with pytest.raises(EventFinalizedError):
            await van_service.delete_van(van.id)

    @pytest.mark.asyncio
    async def test_capacity_change_on_finalized_event_is_refused(
        self, van_service, event_service, queue_service, session
    ):
        # Given
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))
        van = await van_service.create_van("Van A", capacity=4, event_id=event.id)
        event_id, van_id = event.id, van.id
        await event_service.update_event(event_id, {"status": EventStatus.IN_PROGRESS})
        await event_service.update_event_van(event_id, van_id, van_cost="100")
        await queue_service.join(van_id, "Alice")
        await queue_service.join(van_id, "Bob")
        await event_service.update_event(event_id, {"status": EventStatus.FINALIZED})

        # When / Then
        with pytest.raises(EventFinalizedError):
            await van_service.update_van(van_id, {"capacity": 2})

        assert (await VanRepository(session).get(van_id)).capacity == 4
        link = await EventRepository(session).get_event_van(event_id, van_id)
        assert link.status == EventVanStatus.OPEN

    @pytest.mark.asyncio
    async def test_rename_on_finalized_event_is_allowed(self, van_service, event_service):
        # Given
        event = await event_service.create_event("Summer Trip", date(2026, 7, 1))
        van = await van_service.create_van("Van A", capacity=3, event_id=event.id)
        await event_service.update_event(event.id, {"status": EventStatus.IN_PROGRESS})
        await event_service.update_event(event.id, {"status": EventStatus.FINALIZED})

        # When
        renamed = await van_service.update_van(van.id, {"name": "Van Z", "capacity": 3})

        # Then
        assert renamed.name == "Van Z"
        assert renamed.capacity == 3


class TestListVans:

    @pytest.mark.asyncio
    async def test_counts_and_departure_order(self, van_service, queue_service):
        # Given
        late = await van_service.create_van(
            "Late Van", capacity=1, departure_timestamp=datetime(2026, 7, 1, 18, 0, tzinfo=timezone.utc)
        )
        early = await van_service.create_van(
            "Early Van", capacity=2, departure_timestamp=datetime(2026, 7, 1, 6, 0, tzinfo=timezone.utc)
        )
        await van_service.create_van("Unscheduled", capacity=2)
        await queue_service.join(late.id, "Alice")
        await queue_service.join(late.id, "Bob")
        released = await queue_service.join(early.id, "Carol")
        await queue_service.release(released.reservation.id)

        # When
        vans = await van_service.list_vans()

        # Then
        assert [(v.name, v.confirmed_count, v.waitlisted_count) for v in vans] == [
            ("Early Van", 0, 0),
            ("Late Van", 1, 1),
            ("Unscheduled", 0, 0),
        ]

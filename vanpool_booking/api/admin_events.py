"""
Admin endpoints for events and the vans attached to them.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vanpool_booking.database import get_db
from vanpool_booking.schemas.common import SuccessResponse
from vanpool_booking.schemas.event import (
    AttachVanRequest,
    EventCreate,
    EventResponse,
    EventUpdate,
    EventVanResponse,
    EventVanUpdate,
    EventWithVans,
)
from vanpool_booking.services.event_service import EventService


router = APIRouter(prefix="/admin/events", tags=["admin"])


def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    """Dependency to get event service instance."""
    return EventService(db)


@router.get("", response_model=List[EventWithVans])
async def list_events(event_service: EventService = Depends(get_event_service)):
    """Events by date, each with its vans and their costs."""
    return await event_service.list_events_with_vans()


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    event_service: EventService = Depends(get_event_service)
):
    """Create an event. ``event_date`` uses the dd/mm/yyyy format."""
    return await event_service.create_event(payload.name, payload.event_date, payload.status)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    payload: EventUpdate,
    event_service: EventService = Depends(get_event_service)
):
    """
    Update an event.

    Status moves forward only (planned, in_progress, finalized) and a
    finalized event can no longer be edited.
    """
    return await event_service.update_event(event_id, payload.model_dump(exclude_unset=True))


@router.post("/{event_id}/vans", response_model=EventVanResponse, status_code=status.HTTP_201_CREATED)
async def attach_van(
    event_id: UUID,
    payload: AttachVanRequest,
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.attach_van(event_id, payload.van_id, payload.van_cost, payload.status)


@router.patch("/{event_id}/vans/{van_id}", response_model=EventVanResponse)
async def update_event_van(
    event_id: UUID,
    van_id: UUID,
    payload: EventVanUpdate,
    event_service: EventService = Depends(get_event_service)
):
    """Close, reopen or hold a van, or change its cost."""
    return await event_service.update_event_van(
        event_id, van_id, status=payload.status, van_cost=payload.van_cost
    )


@router.delete("/{event_id}/vans/{van_id}", response_model=SuccessResponse)
async def detach_van(
    event_id: UUID,
    van_id: UUID,
    event_service: EventService = Depends(get_event_service)
):
    await event_service.detach_van(event_id, van_id)
    return SuccessResponse(message="Van detached")

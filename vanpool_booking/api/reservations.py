"""
Public reservation queue endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vanpool_booking.database import get_db
from vanpool_booking.schemas.reservation import (
    JoinRequest,
    JoinResponse,
    QueueView,
    ReleaseResponse,
)
from vanpool_booking.services.queue_service import QueueService


router = APIRouter(prefix="/reservations", tags=["reservations"])


def get_queue_service(db: AsyncSession = Depends(get_db)) -> QueueService:
    """Dependency to get queue service instance."""
    return QueueService(db)


@router.get("", response_model=QueueView)
async def get_queue(
    van: Optional[str] = Query(None, description="Van id or name; the default van when omitted"),
    queue_service: QueueService = Depends(get_queue_service)
):
    """Confirmed riders and waitlist of a van, both in position order."""
    return await queue_service.get_queue(van)


@router.post("", response_model=JoinResponse, status_code=status.HTTP_201_CREATED)
async def join_queue(
    payload: JoinRequest,
    queue_service: QueueService = Depends(get_queue_service)
):
    """
    Join a van queue.

    The rider is confirmed while seats remain and waitlisted afterwards.
    A name that already holds an active seat is refused with
    ``duplicate_name`` unless an administrator granted an override.
    """
    return await queue_service.join(payload.van, payload.full_name, payload.email)


@router.delete("/{reservation_id}", response_model=ReleaseResponse)
async def release_reservation(
    reservation_id: UUID,
    queue_service: QueueService = Depends(get_queue_service)
):
    """Give up a seat or leave the waitlist."""
    return await queue_service.release(reservation_id)

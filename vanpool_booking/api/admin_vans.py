"""
Admin endpoints for vans.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vanpool_booking.database import get_db
from vanpool_booking.schemas.common import SuccessResponse
from vanpool_booking.schemas.van import VanCreate, VanResponse, VanUpdate, VanWithCounts
from vanpool_booking.services.van_service import VanService


router = APIRouter(prefix="/admin/vans", tags=["admin"])


def get_van_service(db: AsyncSession = Depends(get_db)) -> VanService:
    """Dependency to get van service instance."""
    return VanService(db)


@router.get("", response_model=List[VanWithCounts])
async def list_vans(van_service: VanService = Depends(get_van_service)):
    """Vans by departure time with their confirmed and waitlisted counts."""
    return await van_service.list_vans()


@router.post("", response_model=VanResponse, status_code=status.HTTP_201_CREATED)
async def create_van(
    payload: VanCreate,
    van_service: VanService = Depends(get_van_service)
):
    return await van_service.create_van(
        payload.name,
        capacity=payload.capacity,
        departure_timestamp=payload.departure_timestamp,
        event_id=payload.event_id,
    )


@router.patch("/{van_id}", response_model=VanResponse)
async def update_van(
    van_id: UUID,
    payload: VanUpdate,
    van_service: VanService = Depends(get_van_service)
):
    """Rename a van, change its capacity or move (or clear) its departure."""
    return await van_service.update_van(van_id, payload.model_dump(exclude_unset=True))


@router.delete("/{van_id}", response_model=SuccessResponse)
async def delete_van(
    van_id: UUID,
    van_service: VanService = Depends(get_van_service)
):
    """Delete a van without active reservations."""
    await van_service.delete_van(van_id)
    return SuccessResponse(message="Van removed")

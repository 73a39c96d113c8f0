"""
Admin endpoints for duplicate-name overrides.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vanpool_booking.database import get_db
from vanpool_booking.schemas.common import SuccessResponse
from vanpool_booking.schemas.override import OverrideCreate, OverrideResponse
from vanpool_booking.services.duplicate_policy import DuplicatePolicy


router = APIRouter(prefix="/admin/overrides", tags=["admin"])


def get_duplicate_policy(db: AsyncSession = Depends(get_db)) -> DuplicatePolicy:
    """Dependency to get duplicate policy instance."""
    return DuplicatePolicy(db)


@router.get("", response_model=List[OverrideResponse])
async def list_overrides(policy: DuplicatePolicy = Depends(get_duplicate_policy)):
    """Overrides, newest first."""
    return await policy.list_overrides()


@router.post("", response_model=OverrideResponse, status_code=status.HTTP_201_CREATED)
async def create_override(
    payload: OverrideCreate,
    policy: DuplicatePolicy = Depends(get_duplicate_policy)
):
    """Allow a name to hold several active seats, optionally for a limited time."""
    return await policy.create_override(payload.full_name, payload.reason, payload.duration_hours)


@router.delete("/{override_id}", response_model=SuccessResponse)
async def delete_override(
    override_id: UUID,
    policy: DuplicatePolicy = Depends(get_duplicate_policy)
):
    await policy.delete_override(override_id)
    return SuccessResponse(message="Override removed")

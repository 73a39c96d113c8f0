"""
Admin views over reservations: listings, payment flags and roster export.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Reservation, ReservationStatus
from ..repositories import ReservationRepository, VanRepository
from ..schemas.reservation import RosterRow
from ..utils.exceptions import ReservationNotFoundError, VanNotFoundError
from .base import transaction

logger = logging.getLogger(__name__)


class ReservationService:
    """Service for the admin reservation screens."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.reservations = ReservationRepository(session)
        self.vans = VanRepository(session)

    async def list_reservations(
        self,
        van_id: UUID,
        status: Optional[ReservationStatus] = None,
    ) -> List[Reservation]:
        """Full history of a van in position order, optionally filtered by status."""
        if await self.vans.get(van_id) is None:
            raise VanNotFoundError(str(van_id))
        statuses = [ReservationStatus(status)] if status else None
        return await self.reservations.list_for_van(van_id, statuses)

    async def toggle_payment(self, reservation_id: UUID, has_paid: bool) -> Reservation:
        async with transaction(self.session, "toggle_payment"):
            reservation = await self.reservations.get(reservation_id, for_update=True)
            if reservation is None:
                raise ReservationNotFoundError(str(reservation_id))
            reservation.has_paid = bool(has_paid)
            await self.session.flush()

        logger.info(f"Reservation {reservation_id} marked {'paid' if has_paid else 'unpaid'}")
        return reservation

    async def export_roster(self, van_id: UUID) -> List[RosterRow]:
        """Every reservation a van ever had, as flat rows for spreadsheet export."""
        reservations = await self.list_reservations(van_id)
        return [RosterRow.model_validate(reservation) for reservation in reservations]

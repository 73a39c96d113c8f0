"""
Queries over reservations.
"""

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ACTIVE_STATUSES, Reservation, ReservationStatus


class ReservationRepository:
    """Narrow store access for :class:`Reservation` rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, reservation_id: UUID, for_update: bool = False) -> Optional[Reservation]:
        query = select(Reservation).where(Reservation.id == reservation_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def count(self, van_id: UUID, status: ReservationStatus) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(Reservation)
            .where(Reservation.van_id == van_id, Reservation.status == status)
        )
        return int(total or 0)

    async def count_active(self, van_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(Reservation)
            .where(Reservation.van_id == van_id, Reservation.status.in_(ACTIVE_STATUSES))
        )
        return int(total or 0)

    async def positions(self, van_id: UUID, status: ReservationStatus) -> List[int]:
        result = await self.session.execute(
            select(Reservation.position)
            .where(Reservation.van_id == van_id, Reservation.status == status)
            .order_by(Reservation.position.asc())
        )
        return [position for (position,) in result.all()]

    async def max_position(self, van_id: UUID, status: ReservationStatus) -> int:
        highest = await self.session.scalar(
            select(func.max(Reservation.position))
            .where(Reservation.van_id == van_id, Reservation.status == status)
        )
        return int(highest or 0)

    async def find_active_by_name(self, full_name: str) -> Optional[Reservation]:
        """Oldest active reservation held under ``full_name`` on any van."""
        result = await self.session.execute(
            select(Reservation)
            .where(Reservation.full_name == full_name, Reservation.status.in_(ACTIVE_STATUSES))
            .order_by(Reservation.joined_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_van(
        self,
        van_id: UUID,
        statuses: Optional[Sequence[ReservationStatus]] = None,
        for_update: bool = False,
    ) -> List[Reservation]:
        """Reservations of a van in position order, oldest first on ties."""
        query = select(Reservation).where(Reservation.van_id == van_id)
        if statuses:
            query = query.where(Reservation.status.in_(list(statuses)))
        query = query.order_by(Reservation.position.asc(), Reservation.joined_at.asc())
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_cancelled(self, van_id: UUID) -> None:
        await self.session.execute(
            delete(Reservation)
            .where(Reservation.van_id == van_id, Reservation.status == ReservationStatus.CANCELLED)
            .execution_options(synchronize_session="fetch")
        )

    async def lock_name(self, full_name: str) -> None:
        """Serialize same-name joins for the rest of the transaction.

        Only PostgreSQL offers transaction-scoped advisory locks; elsewhere
        the row lock on the van is all the serialization there is.
        """
        if self.session.bind.dialect.name != "postgresql":
            return
        await self.session.execute(select(func.pg_advisory_xact_lock(func.hashtext(full_name))))

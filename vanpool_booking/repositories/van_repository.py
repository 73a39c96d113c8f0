"""
Queries over vans.
"""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Reservation, ReservationStatus, Van


class VanRepository:
    """Narrow store access for :class:`Van` rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, van_id: UUID, for_update: bool = False) -> Optional[Van]:
        query = select(Van).where(Van.id == van_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str, for_update: bool = False) -> Optional[Van]:
        query = select(Van).where(Van.name == name)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def name_taken(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        query = select(func.count()).select_from(Van).where(Van.name == name)
        if exclude_id is not None:
            query = query.where(Van.id != exclude_id)
        return (await self.session.scalar(query) or 0) > 0

    async def add(self, van: Van) -> Van:
        self.session.add(van)
        await self.session.flush()
        return van

    async def delete(self, van: Van) -> None:
        await self.session.delete(van)
        await self.session.flush()

    async def list_with_counts(self) -> List[Tuple[Van, int, int]]:
        """Vans by departure time with their confirmed and waitlisted counts."""
        confirmed = func.count(
            case((Reservation.status == ReservationStatus.CONFIRMED, Reservation.id))
        )
        waitlisted = func.count(
            case((Reservation.status == ReservationStatus.WAITLISTED, Reservation.id))
        )
        query = (
            select(Van, confirmed, waitlisted)
            .outerjoin(
                Reservation,
                and_(
                    Reservation.van_id == Van.id,
                    Reservation.status != ReservationStatus.CANCELLED,
                ),
            )
            .group_by(Van.id)
            .order_by(Van.departure_timestamp.asc().nulls_last(), Van.name.asc())
        )
        result = await self.session.execute(query)
        return [(van, int(c or 0), int(w or 0)) for van, c, w in result.all()]

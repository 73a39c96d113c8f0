"""
Queries over events and their van associations.
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Event, EventVan, EventVanStatus


class EventRepository:
    """Narrow store access for :class:`Event` and :class:`EventVan` rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, event_id: UUID, for_update: bool = False) -> Optional[Event]:
        query = select(Event).where(Event.id == event_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def add(self, event: Event) -> Event:
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_with_vans(self) -> List[Event]:
        """Events by date with associations and vans eagerly loaded."""
        query = (
            select(Event)
            .options(selectinload(Event.event_vans).selectinload(EventVan.van))
            .order_by(Event.event_date.asc(), Event.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    # Associations

    async def get_event_van(self, event_id: UUID, van_id: UUID, for_update: bool = False) -> Optional[EventVan]:
        query = select(EventVan).where(EventVan.event_id == event_id, EventVan.van_id == van_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_event_van_for_van(self, van_id: UUID, for_update: bool = False) -> Optional[EventVan]:
        query = select(EventVan).where(EventVan.van_id == van_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_event_vans(self, event_id: UUID) -> List[EventVan]:
        query = (
            select(EventVan)
            .options(selectinload(EventVan.van))
            .where(EventVan.event_id == event_id)
            .order_by(EventVan.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def first_open_event_van(self, event_id: UUID, exclude_van_id: UUID) -> Optional[EventVan]:
        """Earliest-attached other van of the event that is still open."""
        query = (
            select(EventVan)
            .where(
                EventVan.event_id == event_id,
                EventVan.van_id != exclude_van_id,
                EventVan.status == EventVanStatus.OPEN,
            )
            .order_by(EventVan.created_at.asc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def sum_van_costs(self, event_id: UUID) -> Decimal:
        total = await self.session.scalar(
            select(func.coalesce(func.sum(EventVan.van_cost), 0)).where(EventVan.event_id == event_id)
        )
        return Decimal(str(total or 0)).quantize(Decimal("0.01"))

    async def add_event_van(self, event_van: EventVan) -> EventVan:
        self.session.add(event_van)
        await self.session.flush()
        return event_van

    async def delete_event_van(self, event_van: EventVan) -> None:
        await self.session.delete(event_van)
        await self.session.flush()

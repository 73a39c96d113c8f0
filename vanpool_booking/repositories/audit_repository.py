"""
Append and read access to the audit trail.
"""

from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ReservationEvent, ReservationEventType


class AuditRepository:
    """Store access for :class:`ReservationEvent` rows. Records are never updated."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, event_type: ReservationEventType, payload: Dict[str, Any]) -> ReservationEvent:
        record = ReservationEvent(event_type=event_type, payload=payload)
        self.session.add(record)
        await self.session.flush()
        return record

    async def list_recent(self, limit: int) -> List[ReservationEvent]:
        result = await self.session.execute(
            select(ReservationEvent)
            .order_by(ReservationEvent.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

"""
Queries over duplicate-name overrides.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DuplicateNameOverride


class OverrideRepository:
    """Narrow store access for :class:`DuplicateNameOverride` rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, override_id: UUID) -> Optional[DuplicateNameOverride]:
        return await self.session.get(DuplicateNameOverride, override_id)

    async def get_by_name(self, full_name: str) -> Optional[DuplicateNameOverride]:
        result = await self.session.execute(
            select(DuplicateNameOverride).where(DuplicateNameOverride.full_name == full_name)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[DuplicateNameOverride]:
        result = await self.session.execute(
            select(DuplicateNameOverride).order_by(DuplicateNameOverride.created_at.desc())
        )
        return list(result.scalars().all())

    async def add(self, override: DuplicateNameOverride) -> DuplicateNameOverride:
        self.session.add(override)
        await self.session.flush()
        return override

    async def delete(self, override: DuplicateNameOverride) -> None:
        await self.session.delete(override)
        await self.session.flush()

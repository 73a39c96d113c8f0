"""
One-active-seat-per-name rule and its admin overrides.
"""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DuplicateNameOverride, ReservationEventType
from ..models.base import utcnow
from ..repositories import OverrideRepository, ReservationRepository
from ..schemas.reservation import ReservationResponse
from ..utils.exceptions import DuplicateNameError, OverrideNotFoundError, ValidationError
from ..utils.names import MIN_FULL_NAME_LENGTH, normalize_full_name
from .audit_service import AuditLog
from .base import transaction

logger = logging.getLogger(__name__)


def validate_full_name(raw: Optional[str]) -> str:
    """Normalize a rider's name, rejecting anything shorter than three characters."""
    full_name = normalize_full_name(raw)
    if len(full_name) < MIN_FULL_NAME_LENGTH:
        raise ValidationError(
            f"Full name must have at least {MIN_FULL_NAME_LENGTH} characters",
            field_errors={"full_name": ["too short"]},
        )
    return full_name


class DuplicatePolicy:
    """Decides whether a name may take another seat and manages overrides."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.reservations = ReservationRepository(session)
        self.overrides = OverrideRepository(session)
        self.audit = AuditLog(session)

    async def check(self, raw_name: Optional[str]) -> str:
        """
        Validate a join request's name inside the caller's transaction.

        Returns the normalized name, or raises ``DuplicateNameError`` carrying
        the existing reservation when the name already holds an active seat
        and no active override exists. Auditing the block is left to the
        caller, once its transaction has been rolled back.
        """
        full_name = validate_full_name(raw_name)

        existing = await self.reservations.find_active_by_name(full_name)
        if existing is None:
            return full_name

        override = await self.overrides.get_by_name(full_name)
        if override is not None and override.is_active_at(utcnow()):
            logger.info(f"Duplicate name allowed by override {override.id}")
            return full_name

        raise DuplicateNameError(
            full_name,
            existing_reservation=ReservationResponse.model_validate(existing).model_dump(mode="json"),
        )

    async def create_override(
        self,
        full_name: str,
        reason: Optional[str] = None,
        duration_hours: Optional[float] = None,
    ) -> DuplicateNameOverride:
        """Add an override, or renew the existing one for the same name."""
        name = validate_full_name(full_name)
        if duration_hours is not None and duration_hours <= 0:
            raise ValidationError(
                "duration_hours must be positive",
                field_errors={"duration_hours": ["must be greater than 0"]},
            )

        reason = reason.strip() if reason and reason.strip() else None
        expires_at = utcnow() + timedelta(hours=duration_hours) if duration_hours is not None else None

        async with transaction(self.session, "create_override"):
            override = await self.overrides.get_by_name(name)
            if override is None:
                override = await self.overrides.add(
                    DuplicateNameOverride(full_name=name, reason=reason, expires_at=expires_at)
                )
            else:
                override.reason = reason
                override.expires_at = expires_at
                await self.session.flush()

        logger.info(f"Duplicate-name override {override.id} saved")
        await self.audit.record(
            ReservationEventType.OVERRIDE_ADDED,
            {
                "override_id": str(override.id),
                "full_name": name,
                "reason": reason,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )
        return override

    async def delete_override(self, override_id: UUID) -> None:
        async with transaction(self.session, "delete_override"):
            override = await self.overrides.get(override_id)
            if override is None:
                raise OverrideNotFoundError(str(override_id))
            full_name = override.full_name
            await self.overrides.delete(override)

        await self.audit.record(
            ReservationEventType.OVERRIDE_REMOVED,
            {"override_id": str(override_id), "full_name": full_name},
        )

    async def list_overrides(self) -> List[DuplicateNameOverride]:
        return await self.overrides.list_all()

"""
Append-only audit log of reservation and lifecycle facts.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import ReservationEvent, ReservationEventType
from ..repositories import AuditRepository
from ..utils.logging_config import log_business_event

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Records domain facts as ``ReservationEvent`` rows.

    Writes are best-effort: each record goes through its own short-lived
    session on the same engine, after the caller's transaction has already
    committed or rolled back. A failed write is logged and swallowed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, event_type: ReservationEventType, payload: Dict[str, Any]) -> Optional[ReservationEvent]:
        """Append one record. Never raises."""
        log_business_event(event_type.value, payload)

        try:
            async with AsyncSession(self.session.bind, expire_on_commit=False) as audit_session:
                record = await AuditRepository(audit_session).add(event_type, payload)
                await audit_session.commit()
                return record
        except Exception as e:
            logger.warning(
                f"Failed to write audit event {event_type.value}: {e}",
                extra={"audit_event_type": event_type.value},
            )
            return None

    async def list_recent(self, limit: Optional[int] = None) -> List[ReservationEvent]:
        """Newest records first, capped at the configured maximum."""
        settings = get_settings()
        if limit is None:
            limit = settings.audit_events_default_limit
        limit = max(1, min(limit, settings.audit_events_max_limit))
        return await AuditRepository(self.session).list_recent(limit)

"""
Admin endpoints for reservations and the audit trail.
"""

import csv
import io
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from vanpool_booking.database import get_db
from vanpool_booking.models import ReservationStatus
from vanpool_booking.schemas.audit import AuditEventResponse
from vanpool_booking.schemas.reservation import PaymentUpdate, ReservationResponse, RosterRow
from vanpool_booking.services.audit_service import AuditLog
from vanpool_booking.services.reservation_service import ReservationService


router = APIRouter(prefix="/admin", tags=["admin"])

ROSTER_HEADER = ["Full Name", "Email", "Status", "Position", "Joined At", "Released At"]


def get_reservation_service(db: AsyncSession = Depends(get_db)) -> ReservationService:
    """Dependency to get reservation service instance."""
    return ReservationService(db)


def get_audit_log(db: AsyncSession = Depends(get_db)) -> AuditLog:
    """Dependency to get audit log instance."""
    return AuditLog(db)


def render_roster_csv(rows: List[RosterRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(ROSTER_HEADER)
    for row in rows:
        writer.writerow([
            row.full_name,
            row.email or "",
            row.status.value,
            row.position,
            row.joined_at.isoformat(),
            row.released_at.isoformat() if row.released_at else "",
        ])
    return buffer.getvalue()


@router.get("/reservations", response_model=List[ReservationResponse])
async def list_reservations(
    van_id: UUID = Query(..., description="Van to list"),
    status: Optional[ReservationStatus] = Query(None, description="Only this status"),
    reservation_service: ReservationService = Depends(get_reservation_service)
):
    return await reservation_service.list_reservations(van_id, status)


@router.get("/reservations/export")
async def export_roster(
    van_id: UUID = Query(..., description="Van to export"),
    reservation_service: ReservationService = Depends(get_reservation_service)
):
    """Download a van's roster as CSV."""
    rows = await reservation_service.export_roster(van_id)
    return Response(
        content=render_roster_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=van-{van_id}-roster.csv"},
    )


@router.patch("/reservations/{reservation_id}", response_model=ReservationResponse)
async def toggle_payment(
    reservation_id: UUID,
    payload: PaymentUpdate,
    reservation_service: ReservationService = Depends(get_reservation_service)
):
    """Mark a rider as paid or unpaid."""
    return await reservation_service.toggle_payment(reservation_id, payload.has_paid)


@router.get("/audit-events", response_model=List[AuditEventResponse])
async def list_audit_events(
    limit: Optional[int] = Query(None, ge=1, description="Number of records, newest first"),
    audit_log: AuditLog = Depends(get_audit_log)
):
    return await audit_log.list_recent(limit)

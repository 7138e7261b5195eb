"""
Staff booking endpoints.

Table edits are checked against live holds and bookings before they are
written; a blocked edit returns 409 with the SOLD / ON HOLD reason for
the staff screen. Every mutation carries the booking version the screen
was rendered from.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status

from reservation_engine.api.deps import get_engine, get_staff_id
from reservation_engine.core.logging import get_logger
from reservation_engine.domain.records import BookingRecord
from reservation_engine.domain.state_machine import BookingStatus
from reservation_engine.schemas.bookings import (
    BookingCancel,
    BookingModify,
    BookingRefund,
    BookingResponse,
    ManualBookingCreate,
    MarkPaid,
    ReconciliationIssueResponse,
    TableStatusResponse,
)
from reservation_engine.services.engine import ReservationEngine

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


def _booking_response(booking: BookingRecord) -> BookingResponse:
    return BookingResponse.model_validate({**asdict(booking), "status": booking.status.value})


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_manual_booking(
    body: ManualBookingCreate,
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    """Unpaid reserved or comp booking. It blocks the table like a paid one."""
    booking = await engine.admin.create_booking(
        staff_id=staff_id,
        event_id=body.event_id,
        table_id=body.table_id,
        party_size=body.party_size,
        customer_email=body.customer_email,
        status=BookingStatus(body.status),
        seat_numbers=body.seat_numbers,
        guest_names=body.guest_names,
        selections=body.selections,
        amount_cents=body.amount_cents,
        notes=body.notes,
    )
    return _booking_response(booking)


@router.post("/bookings/{booking_id}/mark-paid", response_model=BookingResponse)
async def mark_booking_paid(
    booking_id: int,
    body: MarkPaid,
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    booking = await engine.admin.mark_paid(
        staff_id, booking_id, body.expected_version, body.amount_cents, body.payment_reference
    )
    return _booking_response(booking)


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
async def modify_booking(
    booking_id: int,
    body: BookingModify,
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    booking = await engine.admin.modify_booking(
        staff_id,
        booking_id,
        body.expected_version,
        table_id=body.table_id,
        seat_numbers=body.seat_numbers,
        party_size=body.party_size,
        guest_names=body.guest_names,
        selections=body.selections,
    )
    return _booking_response(booking)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    body: BookingCancel,
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    booking = await engine.admin.cancel_booking(staff_id, booking_id, body.expected_version, body.reason)
    return _booking_response(booking)


@router.post("/bookings/{booking_id}/refund", response_model=BookingResponse)
async def refund_booking(
    booking_id: int,
    body: BookingRefund,
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    booking = await engine.admin.refund_booking(
        staff_id, booking_id, body.expected_version, body.amount_cents, body.refund_reference
    )
    return _booking_response(booking)


@router.get("/events/{event_id}/tables/{table_id}/status", response_model=TableStatusResponse)
async def table_status(
    event_id: int,
    table_id: int,
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    check = await engine.admin.table_status(event_id, table_id)
    return TableStatusResponse(
        event_id=event_id,
        table_id=table_id,
        editable=check.valid,
        reason=check.reason,
        code=check.code,
    )


@router.get("/reconciliation-issues", response_model=list[ReconciliationIssueResponse])
async def list_reconciliation_issues(
    include_resolved: bool = Query(False),
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    issues = await engine.admin.reconciliation_issues(include_resolved)
    return [ReconciliationIssueResponse.model_validate(asdict(issue)) for issue in issues]

"""
Guest seat-hold endpoints.

A hold is taken when the guest starts checkout and lasts 20 minutes.
Rejections come back as 409 (403 for private events) with a
machine-readable code the client can branch on.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from reservation_engine.api.deps import get_engine, get_event_access, get_optional_user_id, get_staff_id
from reservation_engine.schemas.holds import (
    SeatHoldCleanupResponse,
    SeatHoldComplete,
    SeatHoldCompleteResponse,
    SeatHoldCreate,
    SeatHoldResponse,
    SeatHoldValidate,
    SeatHoldValidateResponse,
)
from reservation_engine.services.engine import ReservationEngine
from reservation_engine.services.reservations import EVENT_PRIVATE, HOLD_FAILED
from reservation_engine.services.seat_holds import HoldValidation

router = APIRouter(prefix="/seat-holds", tags=["Seat holds"])

_REJECTION_STATUS = {
    EVENT_PRIVATE: status.HTTP_403_FORBIDDEN,
    HOLD_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.post("", response_model=SeatHoldResponse)
async def create_seat_hold(
    body: SeatHoldCreate,
    user_id: Optional[int] = Depends(get_optional_user_id),
    has_access: bool = Depends(get_event_access),
    engine: ReservationEngine = Depends(get_engine),
):
    """Hold a table for the caller's party while they pay."""
    outcome = await engine.reservations.create_hold(
        event_id=body.event_id,
        table_id=body.table_id,
        seat_numbers=body.seat_numbers,
        user_id=user_id,
        session_id=body.session_id,
        user_has_access=has_access,
    )
    if not outcome.ok:
        return JSONResponse(
            status_code=_REJECTION_STATUS.get(outcome.code, status.HTTP_409_CONFLICT),
            content={"detail": outcome.message, "code": outcome.code},
        )
    return SeatHoldResponse(lock_token=outcome.lock_token, expires_in_ms=outcome.expires_in_ms)


@router.post("/validate", response_model=SeatHoldValidateResponse)
async def validate_seat_hold(
    body: SeatHoldValidate,
    engine: ReservationEngine = Depends(get_engine),
):
    result = await engine.holds.check_hold(body.lock_token, body.event_id, body.table_id)
    if result != HoldValidation.VALID:
        return JSONResponse(
            status_code=status.HTTP_410_GONE,
            content={
                "valid": False,
                "detail": "Seat hold has expired or is invalid",
                "code": "HOLD_EXPIRED",
            },
        )
    return SeatHoldValidateResponse(valid=True)


@router.post("/complete", response_model=SeatHoldCompleteResponse)
async def complete_seat_hold(
    body: SeatHoldComplete,
    engine: ReservationEngine = Depends(get_engine),
):
    completed = await engine.holds.complete_hold(body.lock_token)
    if not completed:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "success": False,
                "detail": "Seat hold not found or already completed",
                "code": "HOLD_NOT_FOUND",
            },
        )
    return SeatHoldCompleteResponse(success=True)


@router.post("/cleanup", response_model=SeatHoldCleanupResponse)
async def cleanup_seat_holds(
    staff_id: int = Depends(get_staff_id),
    engine: ReservationEngine = Depends(get_engine),
):
    """Expire every hold past its TTL. The background sweep does the same."""
    expired = await engine.holds.expire_stale_holds()
    return SeatHoldCleanupResponse(expired=expired)

"""
Pydantic schemas for the guest seat-hold endpoints.
"""

from typing import Optional

from pydantic import Field

from reservation_engine.schemas.base import CamelModel


class SeatHoldCreate(CamelModel):
    event_id: int
    table_id: int
    seat_numbers: list[int] = Field(min_length=1, max_length=12)
    session_id: Optional[str] = Field(default=None, max_length=128)


class SeatHoldResponse(CamelModel):
    lock_token: str
    expires_in_ms: int


class SeatHoldValidate(CamelModel):
    lock_token: str
    event_id: int
    table_id: int


class SeatHoldValidateResponse(CamelModel):
    valid: bool


class SeatHoldComplete(CamelModel):
    lock_token: str


class SeatHoldCompleteResponse(CamelModel):
    success: bool


class SeatHoldCleanupResponse(CamelModel):
    expired: int

"""
Pydantic schemas for the staff booking endpoints.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import EmailStr, Field

from reservation_engine.domain.selections import Selection
from reservation_engine.schemas.base import CamelModel


class ManualBookingCreate(CamelModel):
    event_id: int
    table_id: int
    party_size: int = Field(gt=0, le=12)
    customer_email: EmailStr
    status: Literal["reserved", "comp"] = "reserved"
    seat_numbers: list[int] = Field(default_factory=list)
    guest_names: list[str] = Field(default_factory=list)
    selections: list[Selection] = Field(default_factory=list)
    amount_cents: int = Field(default=0, ge=0)
    notes: Optional[str] = None


class BookingModify(CamelModel):
    expected_version: int
    table_id: Optional[int] = None
    seat_numbers: Optional[list[int]] = None
    party_size: Optional[int] = Field(default=None, gt=0, le=12)
    guest_names: Optional[list[str]] = None
    selections: Optional[list[Selection]] = None


class MarkPaid(CamelModel):
    expected_version: int
    amount_cents: int = Field(gt=0)
    payment_reference: Optional[str] = None


class BookingCancel(CamelModel):
    expected_version: int
    reason: Optional[str] = None


class BookingRefund(CamelModel):
    expected_version: int
    amount_cents: int = Field(ge=0)
    refund_reference: Optional[str] = None


class BookingResponse(CamelModel):
    id: int
    event_id: int
    table_id: Optional[int]
    party_size: int
    customer_email: str
    status: str
    version: int
    seat_numbers: list[int]
    guest_names: list[str]
    selections: list[dict[str, Any]]
    amount_cents: int
    total_paid_cents: int
    refund_amount_cents: int
    payment_reference: Optional[str]
    needs_review: bool
    review_reason: Optional[str]
    modified_by: Optional[int]
    created_at: datetime
    updated_at: datetime


class TableStatusResponse(CamelModel):
    event_id: int
    table_id: int
    editable: bool
    reason: Optional[str] = None
    code: Optional[str] = None


class ReconciliationIssueResponse(CamelModel):
    id: int
    kind: str
    gateway_event_id: str
    payment_reference: Optional[str]
    event_id: Optional[int]
    table_id: Optional[int]
    customer_email: Optional[str]
    amount_cents: int
    details: dict[str, Any]
    created_at: datetime
    resolved: bool

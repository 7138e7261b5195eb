"""
Storage-agnostic records exchanged between the services and any
InventoryStore backend.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from reservation_engine.domain.state_machine import BookingStatus


class EventType(str, Enum):
    FULL = "full"
    TICKET_ONLY = "ticket-only"


class HoldStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


@dataclass
class EventRecord:
    id: int
    title: str
    date: datetime
    event_type: EventType = EventType.FULL
    total_seats: int = 0
    total_tables: int = 0
    ticket_capacity: int = 0
    available_seats: int = 0
    available_tables: int = 0
    is_private: bool = False


@dataclass
class TableRecord:
    id: int
    venue_id: int
    table_number: int
    capacity: int = 4
    floor: str = "main"


@dataclass
class BookingDraft:
    event_id: int
    table_id: Optional[int]
    party_size: int
    customer_email: str
    status: BookingStatus
    user_id: Optional[int] = None
    seat_numbers: list[int] = field(default_factory=list)
    guest_names: list[str] = field(default_factory=list)
    selections: list[dict[str, Any]] = field(default_factory=list)
    payment_reference: Optional[str] = None
    checkout_reference: Optional[str] = None
    amount_cents: int = 0
    total_paid_cents: int = 0
    lock_token: Optional[str] = None
    modified_by: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class BookingRecord:
    id: int
    event_id: int
    table_id: Optional[int]
    party_size: int
    customer_email: str
    status: BookingStatus
    version: int
    created_at: datetime
    updated_at: datetime
    user_id: Optional[int] = None
    seat_numbers: list[int] = field(default_factory=list)
    guest_names: list[str] = field(default_factory=list)
    selections: list[dict[str, Any]] = field(default_factory=list)
    payment_reference: Optional[str] = None
    checkout_reference: Optional[str] = None
    amount_cents: int = 0
    total_paid_cents: int = 0
    refund_amount_cents: int = 0
    refund_reference: Optional[str] = None
    lock_token: Optional[str] = None
    modified_by: Optional[int] = None
    needs_review: bool = False
    review_reason: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class SeatHoldDraft:
    event_id: int
    table_id: int
    seat_numbers: list[int]
    lock_token: str
    session_id: str
    hold_start_time: datetime
    hold_expiry: datetime
    user_id: Optional[int] = None


@dataclass
class SeatHoldRecord:
    id: int
    event_id: int
    table_id: int
    seat_numbers: list[int]
    lock_token: str
    session_id: str
    hold_start_time: datetime
    hold_expiry: datetime
    status: HoldStatus
    user_id: Optional[int] = None


@dataclass
class BookingTotals:
    booked_seats: int
    booked_tables: int


@dataclass
class ReconciliationIssue:
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
    resolved: bool = False


@dataclass(frozen=True)
class Availability:
    event_id: int
    available_seats: int
    available_tables: int
    total_seats: int
    total_tables: int
    is_sold_out: bool

"""
In-memory inventory store.

Each mutating method performs its read-side check and its write without
awaiting in between, so on a single event loop concurrent coroutines see
first-write-wins semantics, the same guarantee the SQL store gets from
row locks and partial unique indexes.
"""

import copy
import itertools
from datetime import datetime
from typing import Any, Optional

from reservation_engine.core.exceptions import TableConflictError
from reservation_engine.domain.holds import is_live
from reservation_engine.domain.records import (
    BookingDraft,
    BookingRecord,
    BookingTotals,
    EventRecord,
    HoldStatus,
    ReconciliationIssue,
    SeatHoldDraft,
    SeatHoldRecord,
    TableRecord,
)
from reservation_engine.domain.state_machine import BLOCKING_STATUSES, RELEASED_STATUSES
from reservation_engine.storage.interface import InventoryStore


class InMemoryInventoryStore(InventoryStore):

    def __init__(self):
        self.events: dict[int, EventRecord] = {}
        self.tables: dict[int, TableRecord] = {}
        self.bookings: dict[int, BookingRecord] = {}
        self.holds: dict[int, SeatHoldRecord] = {}
        self.payment_events: dict[str, dict[str, Any]] = {}
        self.issues: dict[int, ReconciliationIssue] = {}
        self._booking_ids = itertools.count(1)
        self._hold_ids = itertools.count(1)
        self._issue_ids = itertools.count(1)

    # Seeding

    def add_event(self, event: EventRecord) -> EventRecord:
        self.events[event.id] = copy.deepcopy(event)
        return event

    def add_table(self, table: TableRecord) -> TableRecord:
        self.tables[table.id] = copy.deepcopy(table)
        return table

    # Events and tables

    async def get_event_by_id(self, event_id: int) -> Optional[EventRecord]:
        return copy.deepcopy(self.events.get(event_id))

    async def list_events(self) -> list[EventRecord]:
        return [copy.deepcopy(e) for e in self.events.values()]

    async def update_event(
        self, event_id: int, available_seats: int, available_tables: int
    ) -> None:
        event = self.events.get(event_id)
        if event is not None:
            event.available_seats = available_seats
            event.available_tables = available_tables

    async def get_table_by_id(self, table_id: int) -> Optional[TableRecord]:
        return copy.deepcopy(self.tables.get(table_id))

    # Bookings

    async def get_booking(self, booking_id: int) -> Optional[BookingRecord]:
        return copy.deepcopy(self.bookings.get(booking_id))

    async def get_booking_by_payment_reference(
        self, payment_reference: str
    ) -> Optional[BookingRecord]:
        for booking in self.bookings.values():
            if booking.payment_reference == payment_reference:
                return copy.deepcopy(booking)
        return None

    async def list_bookings_for_event(self, event_id: int) -> list[BookingRecord]:
        return [
            copy.deepcopy(b) for b in self.bookings.values() if b.event_id == event_id
        ]

    async def find_blocking_booking(
        self,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[BookingRecord]:
        found = self._blocking_booking(event_id, table_id, exclude_booking_id)
        return copy.deepcopy(found)

    async def find_user_booking(
        self, user_id: int, event_id: int
    ) -> Optional[BookingRecord]:
        for booking in self.bookings.values():
            if (
                booking.user_id == user_id
                and booking.event_id == event_id
                and booking.status not in RELEASED_STATUSES
            ):
                return copy.deepcopy(booking)
        return None

    async def summarize_bookings(self, event_id: int) -> BookingTotals:
        seats = 0
        tables = set()
        for booking in self.bookings.values():
            if booking.event_id != event_id:
                continue
            if booking.status not in RELEASED_STATUSES:
                seats += booking.party_size
            if booking.status in BLOCKING_STATUSES and booking.table_id is not None:
                tables.add(booking.table_id)
        return BookingTotals(booked_seats=seats, booked_tables=len(tables))

    async def create_booking(self, draft: BookingDraft, now: datetime) -> BookingRecord:
        if draft.status in BLOCKING_STATUSES and draft.table_id is not None:
            self._ensure_table_free(
                draft.event_id, draft.table_id, now, allowed_token=draft.lock_token
            )
        if draft.payment_reference and any(
            b.payment_reference == draft.payment_reference for b in self.bookings.values()
        ):
            raise TableConflictError(
                f"Payment {draft.payment_reference} already has a booking",
                code="PAYMENT_ALREADY_BOOKED",
            )

        booking = BookingRecord(
            id=next(self._booking_ids),
            version=1,
            created_at=now,
            updated_at=now,
            **vars(copy.deepcopy(draft)),
        )
        self.bookings[booking.id] = booking
        return copy.deepcopy(booking)

    async def update_booking(
        self,
        booking_id: int,
        expected_version: int,
        now: datetime,
        **changes: Any,
    ) -> Optional[BookingRecord]:
        booking = self.bookings.get(booking_id)
        if booking is None or booking.version != expected_version:
            return None

        status = changes.get("status", booking.status)
        table_id = changes.get("table_id", booking.table_id)
        moving = table_id != booking.table_id or (
            status in BLOCKING_STATUSES and booking.status not in BLOCKING_STATUSES
        )
        if moving and status in BLOCKING_STATUSES and table_id is not None:
            self._ensure_table_free(
                booking.event_id, table_id, now, exclude_booking_id=booking_id
            )

        for key, value in copy.deepcopy(changes).items():
            if not hasattr(booking, key):
                raise AttributeError(f"Booking has no field {key!r}")
            setattr(booking, key, value)
        booking.version += 1
        booking.updated_at = now
        return copy.deepcopy(booking)

    # Seat holds

    async def get_active_seat_holds(
        self, event_id: int, table_id: int, now: datetime
    ) -> list[SeatHoldRecord]:
        return [
            copy.deepcopy(h)
            for h in self.holds.values()
            if h.event_id == event_id and h.table_id == table_id and is_live(h, now)
        ]

    async def create_seat_hold(self, draft: SeatHoldDraft) -> SeatHoldRecord:
        now = draft.hold_start_time
        for hold in self.holds.values():
            if (
                hold.event_id == draft.event_id
                and hold.table_id == draft.table_id
                and hold.status == HoldStatus.ACTIVE
                and not is_live(hold, now)
            ):
                hold.status = HoldStatus.EXPIRED
        self._ensure_table_free(draft.event_id, draft.table_id, now)

        hold = SeatHoldRecord(
            id=next(self._hold_ids),
            status=HoldStatus.ACTIVE,
            **vars(copy.deepcopy(draft)),
        )
        self.holds[hold.id] = hold
        return copy.deepcopy(hold)

    async def get_seat_hold_by_token(self, lock_token: str) -> Optional[SeatHoldRecord]:
        for hold in self.holds.values():
            if hold.lock_token == lock_token:
                return copy.deepcopy(hold)
        return None

    async def expire_seat_hold(self, hold_id: int) -> bool:
        return self._transition_hold(hold_id, HoldStatus.EXPIRED)

    async def complete_seat_hold(self, hold_id: int) -> bool:
        return self._transition_hold(hold_id, HoldStatus.COMPLETED)

    async def expire_stale_holds(self, now: datetime) -> int:
        count = 0
        for hold in self.holds.values():
            if hold.status == HoldStatus.ACTIVE and now > hold.hold_expiry:
                hold.status = HoldStatus.EXPIRED
                count += 1
        return count

    # Payment events

    async def claim_payment_event(
        self, gateway_event_id: str, event_type: str, now: datetime
    ) -> bool:
        if gateway_event_id in self.payment_events:
            return False
        self.payment_events[gateway_event_id] = {
            "event_type": event_type,
            "outcome": "processing",
            "booking_id": None,
            "received_at": now,
        }
        return True

    async def finish_payment_event(
        self,
        gateway_event_id: str,
        outcome: str,
        booking_id: Optional[int] = None,
    ) -> None:
        entry = self.payment_events.get(gateway_event_id)
        if entry is not None:
            entry["outcome"] = outcome
            entry["booking_id"] = booking_id

    async def release_payment_event(self, gateway_event_id: str) -> None:
        self.payment_events.pop(gateway_event_id, None)

    # Reconciliation

    async def create_reconciliation_issue(
        self,
        kind: str,
        gateway_event_id: str,
        payment_reference: Optional[str],
        event_id: Optional[int],
        table_id: Optional[int],
        customer_email: Optional[str],
        amount_cents: int,
        details: dict[str, Any],
        now: datetime,
    ) -> ReconciliationIssue:
        issue = ReconciliationIssue(
            id=next(self._issue_ids),
            kind=kind,
            gateway_event_id=gateway_event_id,
            payment_reference=payment_reference,
            event_id=event_id,
            table_id=table_id,
            customer_email=customer_email,
            amount_cents=amount_cents,
            details=copy.deepcopy(details),
            created_at=now,
        )
        self.issues[issue.id] = issue
        return copy.deepcopy(issue)

    async def list_reconciliation_issues(
        self, include_resolved: bool = False
    ) -> list[ReconciliationIssue]:
        return [
            copy.deepcopy(i)
            for i in self.issues.values()
            if include_resolved or not i.resolved
        ]

    # Internals

    def _blocking_booking(
        self,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[BookingRecord]:
        for booking in self.bookings.values():
            if (
                booking.event_id == event_id
                and booking.table_id == table_id
                and booking.status in BLOCKING_STATUSES
                and booking.id != exclude_booking_id
            ):
                return booking
        return None

    def _ensure_table_free(
        self,
        event_id: int,
        table_id: int,
        now: datetime,
        allowed_token: Optional[str] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        if self._blocking_booking(event_id, table_id, exclude_booking_id):
            raise TableConflictError(
                f"Table {table_id} is already booked for event {event_id}",
                code="TABLE_SOLD",
            )
        for hold in self.holds.values():
            if (
                hold.event_id == event_id
                and hold.table_id == table_id
                and is_live(hold, now)
                and hold.lock_token != allowed_token
            ):
                raise TableConflictError(
                    f"Table {table_id} is on hold for event {event_id}",
                    code="TABLE_ON_HOLD",
                )

    def _transition_hold(self, hold_id: int, to_status: HoldStatus) -> bool:
        hold = self.holds.get(hold_id)
        if hold is None or hold.status != HoldStatus.ACTIVE:
            return False
        hold.status = to_status
        return True

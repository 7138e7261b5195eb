"""
Inventory store interface: the reservation core's only contract with
persistence.

Implementations:
- InMemoryInventoryStore: single-process, used by tests and local runs
- SqlAlchemyInventoryStore: PostgreSQL, the authoritative store

Write methods must uphold the occupancy invariant atomically: for one
(event_id, table_id) pair there is at most one blocking booking or one
live hold. A violating write raises TableConflictError instead of
persisting.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from reservation_engine.domain.records import (
    BookingDraft,
    BookingRecord,
    BookingTotals,
    EventRecord,
    ReconciliationIssue,
    SeatHoldDraft,
    SeatHoldRecord,
    TableRecord,
)


class InventoryStore(ABC):

    # Events and tables

    @abstractmethod
    async def get_event_by_id(self, event_id: int) -> Optional[EventRecord]:
        pass

    @abstractmethod
    async def list_events(self) -> list[EventRecord]:
        pass

    @abstractmethod
    async def update_event(
        self, event_id: int, available_seats: int, available_tables: int
    ) -> None:
        """Persist the derived availability counters."""
        pass

    @abstractmethod
    async def get_table_by_id(self, table_id: int) -> Optional[TableRecord]:
        pass

    # Bookings

    @abstractmethod
    async def get_booking(self, booking_id: int) -> Optional[BookingRecord]:
        pass

    @abstractmethod
    async def get_booking_by_payment_reference(
        self, payment_reference: str
    ) -> Optional[BookingRecord]:
        pass

    @abstractmethod
    async def list_bookings_for_event(self, event_id: int) -> list[BookingRecord]:
        pass

    @abstractmethod
    async def find_blocking_booking(
        self,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[BookingRecord]:
        pass

    @abstractmethod
    async def find_user_booking(
        self, user_id: int, event_id: int
    ) -> Optional[BookingRecord]:
        """A booking for this user and event that is not canceled/refunded."""
        pass

    @abstractmethod
    async def summarize_bookings(self, event_id: int) -> BookingTotals:
        """
        booked_seats: party sizes summed over bookings not canceled/refunded.
        booked_tables: distinct tables held by blocking bookings.
        """
        pass

    @abstractmethod
    async def create_booking(self, draft: BookingDraft, now: datetime) -> BookingRecord:
        """
        Insert a booking. A blocking booking for a table raises
        TableConflictError if the pair already has a blocking booking or a
        live hold whose token differs from draft.lock_token.
        """
        pass

    @abstractmethod
    async def update_booking(
        self,
        booking_id: int,
        expected_version: int,
        now: datetime,
        **changes: Any,
    ) -> Optional[BookingRecord]:
        """
        Compare-and-swap update. Returns None when no row matched
        (id, expected_version). Bumps version on success. Moving a booking
        onto an occupied table raises TableConflictError.
        """
        pass

    # Seat holds

    @abstractmethod
    async def get_active_seat_holds(
        self, event_id: int, table_id: int, now: datetime
    ) -> list[SeatHoldRecord]:
        """Active holds on the pair that have not passed their expiry."""
        pass

    @abstractmethod
    async def create_seat_hold(self, draft: SeatHoldDraft) -> SeatHoldRecord:
        """
        Insert an active hold. Stale active holds on the pair are expired
        first; a blocking booking or a live hold raises TableConflictError.
        """
        pass

    @abstractmethod
    async def get_seat_hold_by_token(self, lock_token: str) -> Optional[SeatHoldRecord]:
        pass

    @abstractmethod
    async def expire_seat_hold(self, hold_id: int) -> bool:
        """active -> expired. False if the hold was not active."""
        pass

    @abstractmethod
    async def complete_seat_hold(self, hold_id: int) -> bool:
        """active -> completed. False if the hold was not active."""
        pass

    @abstractmethod
    async def expire_stale_holds(self, now: datetime) -> int:
        pass

    # Payment events

    @abstractmethod
    async def claim_payment_event(
        self, gateway_event_id: str, event_type: str, now: datetime
    ) -> bool:
        """Record a gateway event id. False if it was already recorded."""
        pass

    @abstractmethod
    async def finish_payment_event(
        self,
        gateway_event_id: str,
        outcome: str,
        booking_id: Optional[int] = None,
    ) -> None:
        pass

    @abstractmethod
    async def release_payment_event(self, gateway_event_id: str) -> None:
        """Forget a claim so a redelivery is processed again."""
        pass

    # Reconciliation

    @abstractmethod
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
        pass

    @abstractmethod
    async def list_reconciliation_issues(
        self, include_resolved: bool = False
    ) -> list[ReconciliationIssue]:
        pass

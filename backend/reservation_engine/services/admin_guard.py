"""
Staff booking surface.

Every staff edit that touches a table re-runs the reassignment check
against live storage first, so an admin screen that went stale cannot
overwrite a guest's held or paid table. The store re-checks inside the
write as well; the guard exists to give staff the SOLD / ON HOLD reason.
"""

from typing import Optional, Sequence

from reservation_engine.core.exceptions import TableConflictError, TableNotFoundError
from reservation_engine.core.logging import get_logger
from reservation_engine.domain.records import BookingRecord, ReconciliationIssue
from reservation_engine.domain.selections import Selection
from reservation_engine.domain.state_machine import BookingStatus
from reservation_engine.services.bookings import BookingLifecycle
from reservation_engine.services.validator import BookingValidator, ReassignmentCheck

logger = get_logger(__name__)


class AdminConflictGuard:

    def __init__(self, validator: BookingValidator):
        self.validator = validator

    async def check(
        self,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> ReassignmentCheck:
        return await self.validator.validate_table_reassignment(
            table_id, event_id, exclude_booking_id=exclude_booking_id
        )

    async def ensure_table_editable(
        self,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        result = await self.check(event_id, table_id, exclude_booking_id)
        if not result.valid:
            logger.warning(
                "admin_edit_blocked",
                event_id=event_id,
                table_id=table_id,
                booking_id=exclude_booking_id,
                code=result.code,
            )
            raise TableConflictError(result.reason, code=result.code)


class AdminBookingService:

    def __init__(self, guard: AdminConflictGuard, lifecycle: BookingLifecycle):
        self.guard = guard
        self.lifecycle = lifecycle

    @property
    def store(self):
        return self.lifecycle.store

    async def create_booking(
        self,
        staff_id: int,
        event_id: int,
        table_id: int,
        party_size: int,
        customer_email: str,
        status: BookingStatus = BookingStatus.RESERVED,
        seat_numbers: Optional[list[int]] = None,
        guest_names: Optional[list[str]] = None,
        selections: Sequence[Selection] = (),
        amount_cents: int = 0,
        notes: Optional[str] = None,
    ) -> BookingRecord:
        if await self.store.get_table_by_id(table_id) is None:
            raise TableNotFoundError(table_id)
        await self.guard.ensure_table_editable(event_id, table_id)
        return await self.lifecycle.create_manual(
            event_id=event_id,
            table_id=table_id,
            party_size=party_size,
            customer_email=customer_email,
            status=status,
            staff_id=staff_id,
            seat_numbers=seat_numbers,
            guest_names=guest_names,
            selections=selections,
            amount_cents=amount_cents,
            notes=notes,
        )

    async def modify_booking(
        self,
        staff_id: int,
        booking_id: int,
        expected_version: int,
        table_id: Optional[int] = None,
        seat_numbers: Optional[list[int]] = None,
        party_size: Optional[int] = None,
        guest_names: Optional[list[str]] = None,
        selections: Optional[Sequence[Selection]] = None,
    ) -> BookingRecord:
        booking = await self.lifecycle.get(booking_id)
        target_table = table_id if table_id is not None else booking.table_id
        if target_table is not None:
            if table_id is not None and await self.store.get_table_by_id(table_id) is None:
                raise TableNotFoundError(table_id)
            await self.guard.ensure_table_editable(
                booking.event_id, target_table, exclude_booking_id=booking_id
            )
        return await self.lifecycle.modify(
            booking_id,
            expected_version,
            staff_id,
            seat_numbers=seat_numbers,
            party_size=party_size,
            guest_names=guest_names,
            selections=selections,
            table_id=table_id,
        )

    async def mark_paid(
        self,
        staff_id: int,
        booking_id: int,
        expected_version: int,
        amount_cents: int,
        payment_reference: Optional[str] = None,
    ) -> BookingRecord:
        return await self.lifecycle.mark_paid_offline(
            booking_id, expected_version, amount_cents, staff_id, payment_reference
        )

    async def cancel_booking(
        self,
        staff_id: int,
        booking_id: int,
        expected_version: int,
        reason: Optional[str] = None,
    ) -> BookingRecord:
        return await self.lifecycle.cancel(booking_id, expected_version, staff_id, reason)

    async def refund_booking(
        self,
        staff_id: int,
        booking_id: int,
        expected_version: int,
        amount_cents: int,
        refund_reference: Optional[str] = None,
    ) -> BookingRecord:
        return await self.lifecycle.refund(
            booking_id,
            amount_cents,
            refund_reference,
            expected_version=expected_version,
            staff_id=staff_id,
        )

    async def table_status(self, event_id: int, table_id: int) -> ReassignmentCheck:
        if await self.store.get_table_by_id(table_id) is None:
            raise TableNotFoundError(table_id)
        return await self.guard.check(event_id, table_id)

    async def reconciliation_issues(self, include_resolved: bool = False) -> list[ReconciliationIssue]:
        return await self.store.list_reconciliation_issues(include_resolved)

"""
Booking lifecycle.

All status changes go through BookingStateMachine and a compare-and-swap
update on the booking's version:

    UPDATE bookings SET ..., version = version + 1
    WHERE id = :id AND version = :expected_version

Zero rows matched means someone else changed the booking first. Staff
edits carry the version they read and fail fast with
BookingVersionConflictError; system-driven updates (gateway refunds,
dispute flags) re-read and retry a few times.

Creating a booking and releasing one (cancel, refund) both recompute the
event's availability before returning.
"""

from typing import Optional, Sequence

from reservation_engine.core.exceptions import (
    BookingNotFoundError,
    BookingVersionConflictError,
    EventNotFoundError,
    ReservationError,
    TableConflictError,
)
from reservation_engine.core.logging import get_logger
from reservation_engine.core.metrics import booking_version_conflicts, record_transition
from reservation_engine.domain.holds import Clock, utc_now
from reservation_engine.domain.records import BookingDraft, BookingRecord, EventType
from reservation_engine.domain.selections import Selection, dump_selections
from reservation_engine.domain.state_machine import BookingStateMachine, BookingStatus
from reservation_engine.notifications import NotificationDispatcher
from reservation_engine.services.availability import AvailabilityCalculator
from reservation_engine.storage.interface import InventoryStore

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3

MANUAL_STATUSES = (BookingStatus.RESERVED, BookingStatus.COMP)


class BookingLifecycle:

    def __init__(
        self,
        store: InventoryStore,
        availability: AvailabilityCalculator,
        notifications: NotificationDispatcher,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.availability = availability
        self.notifications = notifications
        self.clock = clock

    async def get(self, booking_id: int) -> BookingRecord:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    async def create_confirmed_from_payment(
        self,
        event_id: int,
        table_id: Optional[int],
        seat_numbers: list[int],
        customer_email: str,
        payment_reference: str,
        amount_cents: int,
        user_id: Optional[int] = None,
        guest_names: Optional[list[str]] = None,
        selections: Sequence[Selection] = (),
        checkout_reference: Optional[str] = None,
        lock_token: Optional[str] = None,
        party_size: Optional[int] = None,
    ) -> BookingRecord:
        """
        Create a paid booking. Raises TableConflictError if the table was
        taken by someone other than the holder of lock_token, or, for a
        ticket-only booking (no table), if the pooled capacity is gone.
        """
        BookingStateMachine.validate_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
        party_size = party_size or max(1, len(seat_numbers))
        if table_id is None:
            await self._ensure_ticket_capacity(event_id, party_size)

        draft = BookingDraft(
            event_id=event_id,
            table_id=table_id,
            party_size=party_size,
            customer_email=customer_email,
            status=BookingStatus.CONFIRMED,
            user_id=user_id,
            seat_numbers=list(seat_numbers),
            guest_names=list(guest_names or []),
            selections=dump_selections(list(selections)),
            payment_reference=payment_reference,
            checkout_reference=checkout_reference,
            amount_cents=amount_cents,
            total_paid_cents=amount_cents,
            lock_token=lock_token,
        )
        booking = await self.store.create_booking(draft, self.clock())
        record_transition(booking.status.value)
        logger.info(
            "booking_confirmed",
            booking_id=booking.id,
            event_id=event_id,
            table_id=table_id,
            payment_reference=payment_reference,
        )

        await self.availability.refresh_event(event_id)
        await self._notify_confirmed(booking)
        return booking

    async def create_manual(
        self,
        event_id: int,
        table_id: Optional[int],
        party_size: int,
        customer_email: str,
        status: BookingStatus,
        staff_id: int,
        seat_numbers: Optional[list[int]] = None,
        guest_names: Optional[list[str]] = None,
        selections: Sequence[Selection] = (),
        amount_cents: int = 0,
        notes: Optional[str] = None,
    ) -> BookingRecord:
        """Unpaid staff booking. Occupies the table like a paid one."""
        if status not in MANUAL_STATUSES:
            raise ReservationError(
                f"Manual bookings must be reserved or comp, not {status.value}",
                code="INVALID_STATUS",
            )
        BookingStateMachine.validate_transition(BookingStatus.PENDING, status)
        if await self.store.get_event_by_id(event_id) is None:
            raise EventNotFoundError(event_id)

        draft = BookingDraft(
            event_id=event_id,
            table_id=table_id,
            party_size=party_size,
            customer_email=customer_email,
            status=status,
            seat_numbers=list(seat_numbers or []),
            guest_names=list(guest_names or []),
            selections=dump_selections(list(selections)),
            amount_cents=amount_cents,
            total_paid_cents=0,
            modified_by=staff_id,
            notes=notes,
        )
        booking = await self.store.create_booking(draft, self.clock())
        record_transition(booking.status.value)
        logger.info(
            "manual_booking_created",
            booking_id=booking.id,
            event_id=event_id,
            table_id=table_id,
            status=status.value,
            staff_id=staff_id,
        )

        await self.availability.refresh_event(event_id)
        return booking

    async def mark_paid_offline(
        self,
        booking_id: int,
        expected_version: int,
        amount_cents: int,
        staff_id: int,
        payment_reference: Optional[str] = None,
    ) -> BookingRecord:
        """
        reserved -> confirmed once an external payment has been received.
        A modified booking can be confirmed too, as long as it was never paid.
        """
        current = await self.get(booking_id)
        if current.status == BookingStatus.MODIFIED and current.total_paid_cents > 0:
            raise ReservationError(
                f"Booking {booking_id} is already paid",
                code="ALREADY_PAID",
            )

        changes = {"total_paid_cents": amount_cents, "modified_by": staff_id}
        if payment_reference:
            changes["payment_reference"] = payment_reference
        booking = await self._transition(
            booking_id, BookingStatus.CONFIRMED, expected_version, **changes
        )
        await self._notify_confirmed(booking)
        return booking

    async def modify(
        self,
        booking_id: int,
        expected_version: int,
        staff_id: int,
        seat_numbers: Optional[list[int]] = None,
        party_size: Optional[int] = None,
        guest_names: Optional[list[str]] = None,
        selections: Optional[Sequence[Selection]] = None,
        table_id: Optional[int] = None,
    ) -> BookingRecord:
        changes = {"modified_by": staff_id}
        if seat_numbers is not None:
            changes["seat_numbers"] = list(seat_numbers)
            if party_size is None and seat_numbers:
                party_size = len(seat_numbers)
        if party_size is not None:
            if party_size < 1:
                raise ReservationError("Party size must be at least 1", code="INVALID_PARTY_SIZE")
            changes["party_size"] = party_size
        if guest_names is not None:
            changes["guest_names"] = list(guest_names)
        if selections is not None:
            changes["selections"] = dump_selections(list(selections))
        if table_id is not None:
            changes["table_id"] = table_id

        booking = await self._transition(
            booking_id, BookingStatus.MODIFIED, expected_version, **changes
        )
        await self.availability.refresh_event(booking.event_id)
        return booking

    async def cancel(
        self,
        booking_id: int,
        expected_version: Optional[int] = None,
        staff_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> BookingRecord:
        changes = {}
        if staff_id is not None:
            changes["modified_by"] = staff_id
        if reason:
            changes["notes"] = reason
        booking = await self._transition(
            booking_id, BookingStatus.CANCELED, expected_version, **changes
        )
        await self.availability.refresh_event(booking.event_id)
        return booking

    async def refund(
        self,
        booking_id: int,
        amount_cents: int,
        refund_reference: Optional[str] = None,
        expected_version: Optional[int] = None,
        staff_id: Optional[int] = None,
    ) -> BookingRecord:
        changes = {
            "refund_amount_cents": amount_cents,
            "refund_reference": refund_reference,
        }
        if staff_id is not None:
            changes["modified_by"] = staff_id
        booking = await self._transition(
            booking_id, BookingStatus.REFUNDED, expected_version, **changes
        )
        await self.availability.refresh_event(booking.event_id)
        return booking

    async def flag_for_review(self, booking_id: int, reason: str) -> BookingRecord:
        """Mark a booking for staff attention. Status is left alone."""
        booking = await self._transition(
            booking_id, None, None, needs_review=True, review_reason=reason
        )
        logger.warning("booking_flagged_for_review", booking_id=booking_id, reason=reason)
        return booking

    async def _transition(
        self,
        booking_id: int,
        to_status: Optional[BookingStatus],
        expected_version: Optional[int],
        **changes,
    ) -> BookingRecord:
        attempts = 1 if expected_version is not None else MAX_RETRY_ATTEMPTS
        version = expected_version

        for attempt in range(1, attempts + 1):
            current = await self.get(booking_id)
            version = expected_version if expected_version is not None else current.version
            if current.version != version:
                break
            if to_status is not None:
                BookingStateMachine.validate_transition(current.status, to_status)
                changes["status"] = to_status

            updated = await self.store.update_booking(booking_id, version, self.clock(), **changes)
            if updated is not None:
                if to_status is not None:
                    record_transition(to_status.value)
                logger.info(
                    "booking_updated",
                    booking_id=booking_id,
                    from_status=current.status.value,
                    to_status=updated.status.value,
                    version=updated.version,
                )
                return updated

            logger.info(
                "booking_retry",
                booking_id=booking_id,
                attempt=attempt,
                reason="version_conflict",
            )

        booking_version_conflicts.inc()
        logger.warning(
            "booking_version_conflict",
            booking_id=booking_id,
            expected_version=expected_version,
        )
        raise BookingVersionConflictError(booking_id, version)

    async def _ensure_ticket_capacity(self, event_id: int, party_size: int) -> None:
        event = await self.store.get_event_by_id(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        if event.event_type != EventType.TICKET_ONLY:
            raise ReservationError(
                f"Event {event_id} is sold by table; a table is required",
                code="TABLE_REQUIRED",
            )

        availability = await self.availability.compute_availability(event_id, use_cache=False)
        if availability.available_seats < party_size:
            raise TableConflictError(
                f"Only {availability.available_seats} tickets left for event {event_id}",
                code="CAPACITY_EXCEEDED",
            )

    async def _notify_confirmed(self, booking: BookingRecord) -> None:
        event = await self.store.get_event_by_id(booking.event_id)
        self.notifications.schedule_confirmation(booking, event)

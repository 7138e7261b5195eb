"""
Payment event reconciler.

The gateway delivers events at least once and in no particular order.
Every event id is claimed in storage before any work is done, so a
redelivery is acknowledged and does nothing. A claim is only released
when processing fails on infrastructure, which makes the gateway's retry
the recovery path.

A paid checkout becomes a confirmed booking only if the table is still
free, or is held by the same checkout's lock token; the store re-checks
this in the same write. When the table was lost, money has moved without
inventory, so the event is escalated as a reconciliation issue and no
booking is created.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from reservation_engine.core.exceptions import TableConflictError
from reservation_engine.core.logging import get_logger
from reservation_engine.core.metrics import payment_event_latency, reconciliation_escalations, record_payment_event
from reservation_engine.domain.holds import Clock, utc_now
from reservation_engine.domain.records import EventType
from reservation_engine.domain.state_machine import BookingStateMachine, BookingStatus
from reservation_engine.payments.events import (
    CHARGE_REFUNDED,
    DISPUTE_CREATED,
    SUCCEEDED_TYPES,
    ChargeObject,
    CheckoutMetadata,
    CheckoutSession,
    PaymentEvent,
)
from reservation_engine.services.bookings import BookingLifecycle
from reservation_engine.services.seat_holds import HoldValidation, SeatHoldManager
from reservation_engine.storage.interface import InventoryStore

logger = get_logger(__name__)


class PaymentOutcome(str, Enum):
    BOOKED = "booked"
    DUPLICATE = "duplicate"
    ESCALATED = "escalated"
    FLAGGED = "flagged"
    REFUNDED = "refunded"
    IGNORED = "ignored"


@dataclass(frozen=True)
class PaymentAck:
    received: bool
    outcome: PaymentOutcome
    booking_id: Optional[int] = None


class PaymentEventReconciler:

    def __init__(
        self,
        store: InventoryStore,
        lifecycle: BookingLifecycle,
        holds: SeatHoldManager,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.lifecycle = lifecycle
        self.holds = holds
        self.clock = clock

    async def handle_payment_event(self, event: PaymentEvent) -> PaymentAck:
        with structlog.contextvars.bound_contextvars(gateway_event_id=event.id):
            return await self._handle(event)

    async def _handle(self, event: PaymentEvent) -> PaymentAck:
        started = time.perf_counter()
        log = logger.bind(gateway_event_id=event.id, event_type=event.type)

        if not await self.store.claim_payment_event(event.id, event.type, self.clock()):
            log.info("payment_event_duplicate")
            record_payment_event(event.type, PaymentOutcome.DUPLICATE.value)
            return PaymentAck(received=True, outcome=PaymentOutcome.DUPLICATE)

        try:
            outcome, booking_id = await self._dispatch(event)
        except Exception:
            await self.store.release_payment_event(event.id)
            log.exception("payment_event_failed")
            record_payment_event(event.type, "error")
            raise

        await self.store.finish_payment_event(event.id, outcome.value, booking_id)
        record_payment_event(event.type, outcome.value)
        payment_event_latency.observe(time.perf_counter() - started)
        log.info("payment_event_processed", outcome=outcome.value, booking_id=booking_id)
        return PaymentAck(received=True, outcome=outcome, booking_id=booking_id)

    async def _dispatch(self, event: PaymentEvent) -> tuple[PaymentOutcome, Optional[int]]:
        if event.type in SUCCEEDED_TYPES:
            return await self._handle_payment_succeeded(event)
        if event.type == DISPUTE_CREATED:
            return await self._handle_dispute(event)
        if event.type == CHARGE_REFUNDED:
            return await self._handle_refund(event)
        return PaymentOutcome.IGNORED, None

    async def _handle_payment_succeeded(
        self, event: PaymentEvent
    ) -> tuple[PaymentOutcome, Optional[int]]:
        try:
            session = CheckoutSession.from_event(event)
        except ValidationError as exc:
            return await self._invalid_payload(event, exc)

        if not session.is_paid:
            logger.info("checkout_not_paid", gateway_event_id=event.id, status=session.payment_status)
            return PaymentOutcome.IGNORED, None

        try:
            metadata = CheckoutMetadata.model_validate(session.metadata)
        except ValidationError as exc:
            await self._escalate(
                "invalid_metadata",
                event,
                payment_reference=session.payment_reference,
                amount_cents=session.amount_total,
                details={"errors": _describe_errors(exc)},
            )
            return PaymentOutcome.ESCALATED, None

        existing = await self.store.get_booking_by_payment_reference(session.payment_reference)
        if existing is not None:
            await self._complete_hold(metadata.lock_token)
            return PaymentOutcome.DUPLICATE, existing.id

        email = session.customer_email(metadata)
        if not email:
            await self._escalate(
                "invalid_metadata",
                event,
                payment_reference=session.payment_reference,
                metadata=metadata,
                amount_cents=session.amount_total,
                details={"errors": ["customer email missing"]},
            )
            return PaymentOutcome.ESCALATED, None

        if metadata.table_id is None and not await self._is_ticket_only(metadata.event_id):
            await self._escalate(
                "invalid_metadata",
                event,
                payment_reference=session.payment_reference,
                metadata=metadata,
                customer_email=email,
                amount_cents=session.amount_total,
                details={"errors": ["tableId missing for a table event"]},
            )
            return PaymentOutcome.ESCALATED, None

        if metadata.lock_token and metadata.table_id is not None:
            state = await self.holds.check_hold(metadata.lock_token, metadata.event_id, metadata.table_id)
            if state != HoldValidation.VALID:
                logger.warning(
                    "payment_after_hold_lapsed",
                    gateway_event_id=event.id,
                    hold_state=state.value,
                    event_id=metadata.event_id,
                    table_id=metadata.table_id,
                )

        try:
            booking = await self.lifecycle.create_confirmed_from_payment(
                event_id=metadata.event_id,
                table_id=metadata.table_id,
                seat_numbers=metadata.seats,
                customer_email=email,
                payment_reference=session.payment_reference,
                amount_cents=session.amount_total,
                user_id=metadata.user_id,
                guest_names=metadata.guest_names,
                selections=metadata.selections,
                checkout_reference=session.id,
                lock_token=metadata.lock_token,
                party_size=metadata.party_size,
            )
        except TableConflictError as e:
            if e.code == "PAYMENT_ALREADY_BOOKED":
                return PaymentOutcome.DUPLICATE, None
            await self._escalate(
                "seat_lost",
                event,
                payment_reference=session.payment_reference,
                metadata=metadata,
                customer_email=email,
                amount_cents=session.amount_total,
                details={
                    "reason": e.code,
                    "message": e.message,
                    "seats": metadata.seats,
                    "party_size": metadata.party_size,
                },
            )
            return PaymentOutcome.ESCALATED, None

        await self._complete_hold(metadata.lock_token)
        return PaymentOutcome.BOOKED, booking.id

    async def _handle_dispute(self, event: PaymentEvent) -> tuple[PaymentOutcome, Optional[int]]:
        try:
            charge = ChargeObject.model_validate(event.data.object)
        except ValidationError as exc:
            return await self._invalid_payload(event, exc)

        booking = await self._find_booking(charge)
        if booking is None:
            await self._escalate(
                "dispute_unmatched",
                event,
                payment_reference=charge.payment_intent or charge.charge,
                amount_cents=charge.amount,
                details={"reason": charge.reason},
            )
            return PaymentOutcome.ESCALATED, None

        await self.lifecycle.flag_for_review(
            booking.id, f"Payment disputed: {charge.reason or 'unspecified'}"
        )
        return PaymentOutcome.FLAGGED, booking.id

    async def _handle_refund(self, event: PaymentEvent) -> tuple[PaymentOutcome, Optional[int]]:
        try:
            charge = ChargeObject.model_validate(event.data.object)
        except ValidationError as exc:
            return await self._invalid_payload(event, exc)

        booking = await self._find_booking(charge)
        if booking is None:
            await self._escalate(
                "refund_unmatched",
                event,
                payment_reference=charge.payment_intent or charge.id,
                amount_cents=charge.amount_refunded,
                details={"refund_reference": charge.refund_reference},
            )
            return PaymentOutcome.ESCALATED, None

        if booking.status == BookingStatus.REFUNDED:
            return PaymentOutcome.DUPLICATE, booking.id

        if not BookingStateMachine.can_transition(booking.status, BookingStatus.REFUNDED):
            logger.info(
                "refund_for_closed_booking",
                booking_id=booking.id,
                status=booking.status.value,
            )
            return PaymentOutcome.IGNORED, booking.id

        if charge.amount_refunded < booking.total_paid_cents:
            await self.lifecycle.flag_for_review(
                booking.id,
                f"Partial refund of {charge.amount_refunded} cents",
            )
            return PaymentOutcome.FLAGGED, booking.id

        await self.lifecycle.refund(
            booking.id,
            amount_cents=charge.amount_refunded,
            refund_reference=charge.refund_reference,
        )
        return PaymentOutcome.REFUNDED, booking.id

    async def _find_booking(self, charge: ChargeObject):
        for reference in (charge.payment_intent, charge.charge, charge.id):
            if reference:
                booking = await self.store.get_booking_by_payment_reference(reference)
                if booking is not None:
                    return booking
        return None

    async def _is_ticket_only(self, event_id: int) -> bool:
        event = await self.store.get_event_by_id(event_id)
        return event is not None and event.event_type == EventType.TICKET_ONLY

    async def _invalid_payload(
        self, event: PaymentEvent, exc: ValidationError
    ) -> tuple[PaymentOutcome, Optional[int]]:
        """Authentic but unreadable: acknowledge so the gateway stops retrying."""
        await self._escalate(
            "invalid_payload",
            event,
            payment_reference=None,
            amount_cents=0,
            details={"errors": _describe_errors(exc)},
        )
        return PaymentOutcome.ESCALATED, None

    async def _complete_hold(self, lock_token: Optional[str]) -> None:
        if lock_token:
            await self.holds.complete_hold(lock_token)

    async def _escalate(
        self,
        kind: str,
        event: PaymentEvent,
        payment_reference: Optional[str],
        amount_cents: int,
        details: dict[str, Any],
        metadata: Optional[CheckoutMetadata] = None,
        customer_email: Optional[str] = None,
    ) -> None:
        issue = await self.store.create_reconciliation_issue(
            kind=kind,
            gateway_event_id=event.id,
            payment_reference=payment_reference,
            event_id=metadata.event_id if metadata else None,
            table_id=metadata.table_id if metadata else None,
            customer_email=customer_email or (metadata.customer_email if metadata else None),
            amount_cents=amount_cents,
            details=details,
            now=self.clock(),
        )
        reconciliation_escalations.inc()
        logger.error(
            "payment_reconciliation_required",
            issue_id=issue.id,
            kind=kind,
            gateway_event_id=event.id,
            payment_reference=payment_reference,
            amount_cents=amount_cents,
        )


def _describe_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]

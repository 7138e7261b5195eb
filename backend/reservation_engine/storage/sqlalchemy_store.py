"""
PostgreSQL inventory store.

CONCURRENCY STRATEGY
====================

Every write runs in its own transaction and follows the same shape:

  1. SELECT the venue_tables row FOR UPDATE. Writers competing for the
     same table queue here; writers for other tables do not.
  2. Re-check occupancy (blocking bookings, live holds) inside the lock.
  3. INSERT / UPDATE.

Partial unique indexes back this up:
  - bookings(event_id, table_id) WHERE status is blocking
  - seat_holds(event_id, table_id) WHERE status = 'active'
If two writers ever get past step 2 together, the loser hits the index,
and the IntegrityError is reported as TableConflictError, never as a
generic failure.

Booking edits use compare-and-swap on the version column:
  UPDATE bookings SET ..., version = version + 1
  WHERE id = :id AND version = :expected
Zero affected rows means someone else changed the booking first.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Optional

from sqlalchemy import distinct, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reservation_engine.core.exceptions import StorageUnavailableError, TableConflictError
from reservation_engine.core.logging import get_logger
from reservation_engine.domain.records import (
    BookingDraft,
    BookingRecord,
    BookingTotals,
    EventRecord,
    EventType,
    HoldStatus,
    ReconciliationIssue,
    SeatHoldDraft,
    SeatHoldRecord,
    TableRecord,
)
from reservation_engine.domain.state_machine import (
    BLOCKING_STATUSES,
    RELEASED_STATUSES,
    BookingStatus,
)
from reservation_engine.models import (
    Booking,
    Event,
    PaymentEventLog,
    ReconciliationIssueRow,
    SeatHold,
    VenueTable,
)
from reservation_engine.storage.interface import InventoryStore

logger = get_logger(__name__)

_BLOCKING = [s.value for s in BLOCKING_STATUSES]
_RELEASED = [s.value for s in RELEASED_STATUSES]


class SqlAlchemyInventoryStore(InventoryStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as exc:
            logger.warning("storage_constraint_violation", error=str(exc.orig))
            if "payment_reference" in str(exc.orig):
                raise TableConflictError(
                    "Payment already has a booking", code="PAYMENT_ALREADY_BOOKED"
                ) from exc
            raise TableConflictError(
                "Table is no longer available", code="TABLE_UNAVAILABLE"
            ) from exc
        except (OperationalError, InterfaceError, OSError) as exc:
            logger.error("storage_unavailable", error=str(exc))
            raise StorageUnavailableError("Inventory store is unavailable") from exc

    # Events and tables

    async def get_event_by_id(self, event_id: int) -> Optional[EventRecord]:
        async with self._transaction() as session:
            event = await session.get(Event, event_id)
            return _event_record(event) if event else None

    async def list_events(self) -> list[EventRecord]:
        async with self._transaction() as session:
            result = await session.execute(select(Event).order_by(Event.date.asc()))
            return [_event_record(e) for e in result.scalars().all()]

    async def update_event(
        self, event_id: int, available_seats: int, available_tables: int
    ) -> None:
        async with self._transaction() as session:
            await session.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(available_seats=available_seats, available_tables=available_tables)
            )

    async def get_table_by_id(self, table_id: int) -> Optional[TableRecord]:
        async with self._transaction() as session:
            table = await session.get(VenueTable, table_id)
            if table is None:
                return None
            return TableRecord(
                id=table.id,
                venue_id=table.venue_id,
                table_number=table.table_number,
                capacity=table.capacity,
                floor=table.floor,
            )

    # Bookings

    async def get_booking(self, booking_id: int) -> Optional[BookingRecord]:
        async with self._transaction() as session:
            booking = await session.get(Booking, booking_id)
            return _booking_record(booking) if booking else None

    async def get_booking_by_payment_reference(
        self, payment_reference: str
    ) -> Optional[BookingRecord]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Booking).where(Booking.payment_reference == payment_reference)
            )
            booking = result.scalar_one_or_none()
            return _booking_record(booking) if booking else None

    async def list_bookings_for_event(self, event_id: int) -> list[BookingRecord]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Booking).where(Booking.event_id == event_id).order_by(Booking.id)
            )
            return [_booking_record(b) for b in result.scalars().all()]

    async def find_blocking_booking(
        self,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[BookingRecord]:
        async with self._transaction() as session:
            booking = await self._blocking_booking(session, event_id, table_id, exclude_booking_id)
            return _booking_record(booking) if booking else None

    async def find_user_booking(
        self, user_id: int, event_id: int
    ) -> Optional[BookingRecord]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Booking)
                .where(
                    Booking.user_id == user_id,
                    Booking.event_id == event_id,
                    Booking.status.notin_(_RELEASED),
                )
                .limit(1)
            )
            booking = result.scalar_one_or_none()
            return _booking_record(booking) if booking else None

    async def summarize_bookings(self, event_id: int) -> BookingTotals:
        async with self._transaction() as session:
            seats = await session.scalar(
                select(func.coalesce(func.sum(Booking.party_size), 0)).where(
                    Booking.event_id == event_id,
                    Booking.status.notin_(_RELEASED),
                )
            )
            tables = await session.scalar(
                select(func.count(distinct(Booking.table_id))).where(
                    Booking.event_id == event_id,
                    Booking.status.in_(_BLOCKING),
                    Booking.table_id.isnot(None),
                )
            )
            return BookingTotals(booked_seats=int(seats or 0), booked_tables=int(tables or 0))

    async def create_booking(self, draft: BookingDraft, now: datetime) -> BookingRecord:
        async with self._transaction() as session:
            if draft.payment_reference:
                existing = await session.scalar(
                    select(Booking.id).where(Booking.payment_reference == draft.payment_reference)
                )
                if existing is not None:
                    raise TableConflictError(
                        f"Payment {draft.payment_reference} already has a booking",
                        code="PAYMENT_ALREADY_BOOKED",
                    )

            if draft.status in BLOCKING_STATUSES and draft.table_id is not None:
                await self._lock_table(session, draft.table_id)
                await self._ensure_table_free(
                    session, draft.event_id, draft.table_id, now, allowed_token=draft.lock_token
                )

            booking = Booking(
                event_id=draft.event_id,
                table_id=draft.table_id,
                user_id=draft.user_id,
                party_size=draft.party_size,
                seat_numbers=list(draft.seat_numbers),
                guest_names=list(draft.guest_names),
                selections=list(draft.selections),
                customer_email=draft.customer_email,
                status=draft.status.value,
                payment_reference=draft.payment_reference,
                checkout_reference=draft.checkout_reference,
                amount_cents=draft.amount_cents,
                total_paid_cents=draft.total_paid_cents,
                lock_token=draft.lock_token,
                modified_by=draft.modified_by,
                notes=draft.notes,
                version=1,
                created_at=now,
                updated_at=now,
            )
            session.add(booking)
            await session.flush()
            return _booking_record(booking)

    async def update_booking(
        self,
        booking_id: int,
        expected_version: int,
        now: datetime,
        **changes: Any,
    ) -> Optional[BookingRecord]:
        values = {
            key: (value.value if isinstance(value, BookingStatus) else value)
            for key, value in changes.items()
        }
        async with self._transaction() as session:
            current = await session.get(Booking, booking_id, with_for_update=True)
            if current is None or current.version != expected_version:
                return None

            status = BookingStatus(values.get("status", current.status))
            table_id = values.get("table_id", current.table_id)
            was_blocking = BookingStatus(current.status) in BLOCKING_STATUSES
            moving = table_id != current.table_id or (
                status in BLOCKING_STATUSES and not was_blocking
            )
            if moving and status in BLOCKING_STATUSES and table_id is not None:
                await self._lock_table(session, table_id)
                await self._ensure_table_free(
                    session, current.event_id, table_id, now, exclude_booking_id=booking_id
                )

            result = await session.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.version == expected_version)
                .values(**values, version=Booking.version + 1, updated_at=now)
                .returning(Booking.id)
                .execution_options(synchronize_session=False)
            )
            if result.scalar_one_or_none() is None:
                return None
            await session.refresh(current)
            return _booking_record(current)

    # Seat holds

    async def get_active_seat_holds(
        self, event_id: int, table_id: int, now: datetime
    ) -> list[SeatHoldRecord]:
        async with self._transaction() as session:
            holds = await self._live_holds(session, event_id, table_id, now)
            return [_hold_record(h) for h in holds]

    async def create_seat_hold(self, draft: SeatHoldDraft) -> SeatHoldRecord:
        now = draft.hold_start_time
        async with self._transaction() as session:
            await self._lock_table(session, draft.table_id)
            await session.execute(
                update(SeatHold)
                .where(
                    SeatHold.event_id == draft.event_id,
                    SeatHold.table_id == draft.table_id,
                    SeatHold.status == HoldStatus.ACTIVE.value,
                    SeatHold.hold_expiry < now,
                )
                .values(status=HoldStatus.EXPIRED.value)
            )
            await self._ensure_table_free(session, draft.event_id, draft.table_id, now)

            hold = SeatHold(
                event_id=draft.event_id,
                table_id=draft.table_id,
                seat_numbers=list(draft.seat_numbers),
                user_id=draft.user_id,
                session_id=draft.session_id,
                lock_token=draft.lock_token,
                hold_start_time=draft.hold_start_time,
                hold_expiry=draft.hold_expiry,
                status=HoldStatus.ACTIVE.value,
            )
            session.add(hold)
            await session.flush()
            return _hold_record(hold)

    async def get_seat_hold_by_token(self, lock_token: str) -> Optional[SeatHoldRecord]:
        async with self._transaction() as session:
            result = await session.execute(
                select(SeatHold).where(SeatHold.lock_token == lock_token)
            )
            hold = result.scalar_one_or_none()
            return _hold_record(hold) if hold else None

    async def expire_seat_hold(self, hold_id: int) -> bool:
        return await self._transition_hold(hold_id, HoldStatus.EXPIRED)

    async def complete_seat_hold(self, hold_id: int) -> bool:
        return await self._transition_hold(hold_id, HoldStatus.COMPLETED)

    async def expire_stale_holds(self, now: datetime) -> int:
        async with self._transaction() as session:
            result = await session.execute(
                update(SeatHold)
                .where(
                    SeatHold.status == HoldStatus.ACTIVE.value,
                    SeatHold.hold_expiry < now,
                )
                .values(status=HoldStatus.EXPIRED.value)
            )
            return result.rowcount

    # Payment events

    async def claim_payment_event(
        self, gateway_event_id: str, event_type: str, now: datetime
    ) -> bool:
        async with self._transaction() as session:
            result = await session.execute(
                pg_insert(PaymentEventLog)
                .values(
                    gateway_event_id=gateway_event_id,
                    event_type=event_type,
                    outcome="processing",
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["gateway_event_id"])
                .returning(PaymentEventLog.id)
            )
            return result.scalar_one_or_none() is not None

    async def finish_payment_event(
        self,
        gateway_event_id: str,
        outcome: str,
        booking_id: Optional[int] = None,
    ) -> None:
        async with self._transaction() as session:
            await session.execute(
                update(PaymentEventLog)
                .where(PaymentEventLog.gateway_event_id == gateway_event_id)
                .values(outcome=outcome, booking_id=booking_id)
            )

    async def release_payment_event(self, gateway_event_id: str) -> None:
        async with self._transaction() as session:
            row = await session.scalar(
                select(PaymentEventLog).where(PaymentEventLog.gateway_event_id == gateway_event_id)
            )
            if row is not None:
                await session.delete(row)

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
        async with self._transaction() as session:
            row = ReconciliationIssueRow(
                kind=kind,
                gateway_event_id=gateway_event_id,
                payment_reference=payment_reference,
                event_id=event_id,
                table_id=table_id,
                customer_email=customer_email,
                amount_cents=amount_cents,
                details=details,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            await session.flush()
            return _issue_record(row)

    async def list_reconciliation_issues(
        self, include_resolved: bool = False
    ) -> list[ReconciliationIssue]:
        async with self._transaction() as session:
            query = select(ReconciliationIssueRow).order_by(ReconciliationIssueRow.id)
            if not include_resolved:
                query = query.where(ReconciliationIssueRow.resolved.is_(False))
            result = await session.execute(query)
            return [_issue_record(r) for r in result.scalars().all()]

    # Internals

    async def _lock_table(self, session: AsyncSession, table_id: int) -> None:
        await session.execute(
            select(VenueTable.id).where(VenueTable.id == table_id).with_for_update()
        )

    async def _blocking_booking(
        self,
        session: AsyncSession,
        event_id: int,
        table_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[Booking]:
        query = select(Booking).where(
            Booking.event_id == event_id,
            Booking.table_id == table_id,
            Booking.status.in_(_BLOCKING),
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def _live_holds(
        self, session: AsyncSession, event_id: int, table_id: int, now: datetime
    ) -> list[SeatHold]:
        result = await session.execute(
            select(SeatHold).where(
                SeatHold.event_id == event_id,
                SeatHold.table_id == table_id,
                SeatHold.status == HoldStatus.ACTIVE.value,
                SeatHold.hold_expiry >= now,
            )
        )
        return list(result.scalars().all())

    async def _ensure_table_free(
        self,
        session: AsyncSession,
        event_id: int,
        table_id: int,
        now: datetime,
        allowed_token: Optional[str] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        if await self._blocking_booking(session, event_id, table_id, exclude_booking_id):
            raise TableConflictError(
                f"Table {table_id} is already booked for event {event_id}",
                code="TABLE_SOLD",
            )
        holds = await self._live_holds(session, event_id, table_id, now)
        if any(h.lock_token != allowed_token for h in holds):
            raise TableConflictError(
                f"Table {table_id} is on hold for event {event_id}",
                code="TABLE_ON_HOLD",
            )

    async def _transition_hold(self, hold_id: int, to_status: HoldStatus) -> bool:
        async with self._transaction() as session:
            result = await session.execute(
                update(SeatHold)
                .where(SeatHold.id == hold_id, SeatHold.status == HoldStatus.ACTIVE.value)
                .values(status=to_status.value)
            )
            return result.rowcount == 1


def _event_record(event: Event) -> EventRecord:
    return EventRecord(
        id=event.id,
        title=event.title,
        date=event.date,
        event_type=EventType(event.event_type),
        total_seats=event.total_seats,
        total_tables=event.total_tables,
        ticket_capacity=event.ticket_capacity,
        available_seats=event.available_seats,
        available_tables=event.available_tables,
        is_private=event.is_private,
    )


def _booking_record(booking: Booking) -> BookingRecord:
    return BookingRecord(
        id=booking.id,
        event_id=booking.event_id,
        table_id=booking.table_id,
        party_size=booking.party_size,
        customer_email=booking.customer_email,
        status=BookingStatus(booking.status),
        version=booking.version,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        user_id=booking.user_id,
        seat_numbers=list(booking.seat_numbers or []),
        guest_names=list(booking.guest_names or []),
        selections=list(booking.selections or []),
        payment_reference=booking.payment_reference,
        checkout_reference=booking.checkout_reference,
        amount_cents=booking.amount_cents,
        total_paid_cents=booking.total_paid_cents,
        refund_amount_cents=booking.refund_amount_cents,
        refund_reference=booking.refund_reference,
        lock_token=booking.lock_token,
        modified_by=booking.modified_by,
        needs_review=booking.needs_review,
        review_reason=booking.review_reason,
        notes=booking.notes,
    )


def _hold_record(hold: SeatHold) -> SeatHoldRecord:
    return SeatHoldRecord(
        id=hold.id,
        event_id=hold.event_id,
        table_id=hold.table_id,
        seat_numbers=list(hold.seat_numbers or []),
        lock_token=hold.lock_token,
        session_id=hold.session_id,
        hold_start_time=hold.hold_start_time,
        hold_expiry=hold.hold_expiry,
        status=HoldStatus(hold.status),
        user_id=hold.user_id,
    )


def _issue_record(row: ReconciliationIssueRow) -> ReconciliationIssue:
    return ReconciliationIssue(
        id=row.id,
        kind=row.kind,
        gateway_event_id=row.gateway_event_id,
        payment_reference=row.payment_reference,
        event_id=row.event_id,
        table_id=row.table_id,
        customer_email=row.customer_email,
        amount_cents=row.amount_cents,
        details=dict(row.details or {}),
        created_at=row.created_at,
        resolved=row.resolved,
    )

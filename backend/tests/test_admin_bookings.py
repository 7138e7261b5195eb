"""
Tests for the staff booking surface and its conflict guard.
"""

import pytest

from conftest import GALA_EVENT_ID
from reservation_engine.core.exceptions import TableConflictError, TableNotFoundError
from reservation_engine.domain.state_machine import BookingStatus


async def _paid_booking(engine, table_id=6, email="x@example.com", reference="pi_x"):
    return await engine.lifecycle.create_confirmed_from_payment(
        event_id=GALA_EVENT_ID,
        table_id=table_id,
        seat_numbers=[1, 2],
        customer_email=email,
        payment_reference=reference,
        amount_cents=30000,
    )


@pytest.mark.asyncio
async def test_staff_cannot_book_over_paid_guest(engine):
    await _paid_booking(engine)

    with pytest.raises(TableConflictError) as exc_info:
        await engine.admin.create_booking(
            staff_id=900,
            event_id=GALA_EVENT_ID,
            table_id=6,
            party_size=2,
            customer_email="friend@example.com",
        )

    assert exc_info.value.code == "TABLE_SOLD"
    assert "x@example.com" in exc_info.value.message


@pytest.mark.asyncio
async def test_staff_cannot_move_booking_onto_held_table(engine, clock):
    booking = await engine.admin.create_booking(
        staff_id=900,
        event_id=GALA_EVENT_ID,
        table_id=2,
        party_size=4,
        customer_email="walkin@example.com",
    )
    await engine.holds.create_hold(GALA_EVENT_ID, 7, [1, 2])
    clock.advance(minutes=5)

    with pytest.raises(TableConflictError) as exc_info:
        await engine.admin.modify_booking(900, booking.id, booking.version, table_id=7)

    assert exc_info.value.code == "TABLE_ON_HOLD"
    assert "15 minutes remaining" in exc_info.value.message


@pytest.mark.asyncio
async def test_staff_can_move_booking_to_free_table(engine, store):
    booking = await engine.admin.create_booking(
        staff_id=900,
        event_id=GALA_EVENT_ID,
        table_id=2,
        party_size=4,
        customer_email="walkin@example.com",
        status=BookingStatus.COMP,
    )

    moved = await engine.admin.modify_booking(901, booking.id, booking.version, table_id=8)

    assert moved.table_id == 8
    assert moved.status == BookingStatus.MODIFIED
    assert await engine.validator.table_available_for_booking(2, GALA_EVENT_ID)
    assert not await engine.validator.table_available_for_booking(8, GALA_EVENT_ID)


@pytest.mark.asyncio
async def test_edit_on_own_table_is_allowed(engine):
    booking = await _paid_booking(engine)

    modified = await engine.admin.modify_booking(900, booking.id, booking.version, seat_numbers=[1, 2, 3, 4])

    assert modified.party_size == 4
    assert modified.status == BookingStatus.MODIFIED


@pytest.mark.asyncio
async def test_unknown_table_is_rejected(engine):
    with pytest.raises(TableNotFoundError):
        await engine.admin.create_booking(
            staff_id=900,
            event_id=GALA_EVENT_ID,
            table_id=404,
            party_size=2,
            customer_email="walkin@example.com",
        )


@pytest.mark.asyncio
async def test_table_status_reports_reason(engine):
    await _paid_booking(engine, table_id=9, email="owner@example.com", reference="pi_9")

    check = await engine.admin.table_status(GALA_EVENT_ID, 9)

    assert not check.valid
    assert check.reason == "Cannot modify seat 9 - currently SOLD to owner@example.com"


@pytest.mark.asyncio
async def test_edited_reservation_can_still_be_marked_paid(engine):
    reserved = await engine.admin.create_booking(
        staff_id=900,
        event_id=GALA_EVENT_ID,
        table_id=7,
        party_size=4,
        customer_email="walkin@example.com",
    )
    moved = await engine.admin.modify_booking(
        staff_id=900, booking_id=reserved.id, expected_version=reserved.version, table_id=8
    )

    paid = await engine.admin.mark_paid(
        staff_id=901, booking_id=moved.id, expected_version=moved.version, amount_cents=40000
    )

    assert moved.status == BookingStatus.MODIFIED
    assert paid.status == BookingStatus.CONFIRMED
    assert paid.table_id == 8
    assert paid.total_paid_cents == 40000

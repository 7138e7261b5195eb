"""
Tests for booking validation and the staff reassignment reasons.
"""

from datetime import timedelta

import pytest

from conftest import GALA_EVENT_ID, NOW
from reservation_engine.domain.records import BookingDraft
from reservation_engine.domain.state_machine import BookingStatus
from reservation_engine.services.validator import BookingValidator


def _booking(table_id, email="sold@example.com", status=BookingStatus.CONFIRMED, user_id=None):
    return BookingDraft(
        event_id=GALA_EVENT_ID,
        table_id=table_id,
        party_size=2,
        customer_email=email,
        status=status,
        user_id=user_id,
    )


@pytest.mark.asyncio
async def test_table_with_live_hold_is_unavailable(engine):
    await engine.holds.create_hold(GALA_EVENT_ID, 3, [1, 2])

    assert not await engine.validator.table_available_for_booking(3, GALA_EVENT_ID)
    assert await engine.validator.table_available_for_booking(4, GALA_EVENT_ID)


@pytest.mark.asyncio
async def test_expired_hold_does_not_block(engine, clock):
    await engine.holds.create_hold(GALA_EVENT_ID, 3, [1, 2])
    clock.advance(minutes=21)

    assert await engine.validator.table_available_for_booking(3, GALA_EVENT_ID)


@pytest.mark.asyncio
async def test_duplicate_booking_per_user(engine, store, clock):
    await store.create_booking(_booking(1, user_id=42), clock())

    assert not await engine.validator.no_duplicate_booking(42, GALA_EVENT_ID)
    assert await engine.validator.no_duplicate_booking(43, GALA_EVENT_ID)


@pytest.mark.asyncio
async def test_canceled_booking_is_not_a_duplicate(engine, store, clock):
    booking = await store.create_booking(_booking(1, user_id=42), clock())
    await store.update_booking(booking.id, booking.version, clock(), status=BookingStatus.CANCELED)

    assert await engine.validator.no_duplicate_booking(42, GALA_EVENT_ID)


def test_ticket_cutoff():
    event_date = NOW + timedelta(days=3)

    assert BookingValidator.within_ticket_cutoff(event_date, 3, now=NOW)
    assert not BookingValidator.within_ticket_cutoff(event_date, 3, now=NOW + timedelta(seconds=1))


def test_private_event_access():
    assert BookingValidator.validate_event_access(False)
    assert not BookingValidator.validate_event_access(True)
    assert BookingValidator.validate_event_access(True, user_has_access=True)


@pytest.mark.asyncio
async def test_reassignment_onto_sold_table_names_buyer(engine, store, clock):
    await store.create_booking(_booking(6, email="x@example.com"), clock())

    check = await engine.validator.validate_table_reassignment(6, GALA_EVENT_ID)

    assert not check.valid
    assert check.code == "TABLE_SOLD"
    assert "SOLD" in check.reason
    assert "x@example.com" in check.reason
    assert check.reason == "Cannot modify seat 6 - currently SOLD to x@example.com"


@pytest.mark.asyncio
async def test_reserved_and_comp_bookings_also_block_reassignment(engine, store, clock):
    await store.create_booking(_booking(6, status=BookingStatus.COMP, email="vip@example.com"), clock())

    check = await engine.validator.validate_table_reassignment(6, GALA_EVENT_ID)

    assert not check.valid
    assert "vip@example.com" in check.reason


@pytest.mark.asyncio
async def test_reassignment_onto_held_table_reports_minutes_left(engine, clock):
    await engine.holds.create_hold(GALA_EVENT_ID, 6, [1, 2])
    clock.advance(minutes=8)

    check = await engine.validator.validate_table_reassignment(6, GALA_EVENT_ID)

    assert not check.valid
    assert check.code == "TABLE_ON_HOLD"
    assert check.reason == "Cannot modify seat 6 - currently ON HOLD (12 minutes remaining)"


@pytest.mark.asyncio
async def test_booking_own_table_is_excluded(engine, store, clock):
    booking = await store.create_booking(_booking(6), clock())

    check = await engine.validator.validate_table_reassignment(
        6, GALA_EVENT_ID, exclude_booking_id=booking.id
    )

    assert check.valid
    assert check.reason is None


@pytest.mark.asyncio
async def test_free_table_is_valid(engine):
    check = await engine.validator.validate_table_reassignment(9, GALA_EVENT_ID)

    assert check.valid

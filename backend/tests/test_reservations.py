"""
Tests for the guest hold flow and its rejection codes.
"""

import pytest

from conftest import GALA_EVENT_ID, PRIVATE_EVENT_ID, SOON_EVENT_ID
from reservation_engine.core.exceptions import EventNotFoundError, TableNotFoundError
from reservation_engine.domain.records import BookingDraft
from reservation_engine.domain.state_machine import BookingStatus
from reservation_engine.services import reservations


@pytest.mark.asyncio
async def test_hold_granted(engine):
    outcome = await engine.reservations.create_hold(GALA_EVENT_ID, 3, [1, 2], user_id=42)

    assert outcome.ok
    assert outcome.expires_in_ms == 1_200_000
    assert outcome.code is None


@pytest.mark.asyncio
async def test_held_table_is_unavailable(engine):
    await engine.reservations.create_hold(GALA_EVENT_ID, 3, [1, 2], user_id=42)

    outcome = await engine.reservations.create_hold(GALA_EVENT_ID, 3, [1, 2], user_id=43)

    assert not outcome.ok
    assert outcome.code == reservations.TABLE_UNAVAILABLE


@pytest.mark.asyncio
async def test_user_with_booking_gets_duplicate(engine, store, clock):
    await store.create_booking(
        BookingDraft(
            event_id=GALA_EVENT_ID,
            table_id=1,
            party_size=2,
            customer_email="guest@example.com",
            status=BookingStatus.CONFIRMED,
            user_id=42,
        ),
        clock(),
    )

    outcome = await engine.reservations.create_hold(GALA_EVENT_ID, 3, [1, 2], user_id=42)

    assert outcome.code == reservations.DUPLICATE_BOOKING


@pytest.mark.asyncio
async def test_anonymous_guest_skips_duplicate_check(engine):
    outcome = await engine.reservations.create_hold(GALA_EVENT_ID, 3, [1, 2])

    assert outcome.ok


@pytest.mark.asyncio
async def test_private_event_requires_access(engine):
    denied = await engine.reservations.create_hold(PRIVATE_EVENT_ID, 1, [1])
    granted = await engine.reservations.create_hold(PRIVATE_EVENT_ID, 1, [1], user_has_access=True)

    assert denied.code == reservations.EVENT_PRIVATE
    assert granted.ok


@pytest.mark.asyncio
async def test_cutoff_blocks_late_holds(engine):
    outcome = await engine.reservations.create_hold(SOON_EVENT_ID, 1, [1, 2])

    assert outcome.code == reservations.TICKET_CUTOFF_PASSED


@pytest.mark.asyncio
async def test_lost_race_reports_table_unavailable(engine, store, clock, monkeypatch):
    await engine.holds.create_hold(GALA_EVENT_ID, 3, [1, 2])

    # Pre-check passes, the insert loses, the re-read explains why.
    calls = []
    original = engine.validator.table_available_for_booking

    async def free_then_live(table_id, event_id):
        calls.append(table_id)
        if len(calls) == 1:
            return True
        return await original(table_id, event_id)

    monkeypatch.setattr(engine.validator, "table_available_for_booking", free_then_live)

    outcome = await engine.reservations.create_hold(GALA_EVENT_ID, 3, [1, 2])

    assert outcome.code == reservations.TABLE_UNAVAILABLE
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_unknown_event_and_table_raise(engine):
    with pytest.raises(EventNotFoundError):
        await engine.reservations.create_hold(999, 1, [1])
    with pytest.raises(TableNotFoundError):
        await engine.reservations.create_hold(GALA_EVENT_ID, 999, [1])

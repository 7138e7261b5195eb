"""
Tests for the hold maintenance worker.
"""

import asyncio

import pytest

from conftest import GALA_EVENT_ID
from reservation_engine.domain.records import BookingDraft, HoldStatus
from reservation_engine.domain.state_machine import BookingStatus


@pytest.mark.asyncio
async def test_run_once_sweeps_and_refreshes(engine, store, clock):
    token = await engine.holds.create_hold(GALA_EVENT_ID, 3, [1, 2])
    await store.create_booking(
        BookingDraft(
            event_id=GALA_EVENT_ID,
            table_id=4,
            party_size=4,
            customer_email="guest@example.com",
            status=BookingStatus.CONFIRMED,
        ),
        clock(),
    )
    clock.advance(minutes=30)

    expired = await engine.worker.run_once()

    assert expired == 1
    assert (await store.get_seat_hold_by_token(token)).status == HoldStatus.EXPIRED
    event = await store.get_event_by_id(GALA_EVENT_ID)
    assert event.available_tables == 9
    assert event.available_seats == 36


@pytest.mark.asyncio
async def test_start_and_stop(engine):
    engine.worker.sweep_interval = 0.01

    await engine.worker.start()
    await asyncio.sleep(0.05)
    await engine.worker.stop()

    assert not engine.worker.running
    assert engine.worker.task.done()

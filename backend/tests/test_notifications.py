"""
Tests for fire-and-forget confirmation delivery.
"""

import pytest

from conftest import GALA_EVENT_ID
from reservation_engine.domain.state_machine import BookingStatus
from reservation_engine.notifications import BookingNotifier
from reservation_engine.services.engine import build_engine


class BrokenNotifier(BookingNotifier):
    def __init__(self):
        self.attempts = 0

    async def send_booking_confirmation(self, booking, event):
        self.attempts += 1
        raise ConnectionError("smtp down")


@pytest.mark.asyncio
async def test_email_failure_does_not_undo_booking(settings, store, clock):
    notifier = BrokenNotifier()
    engine = build_engine(settings, store=store, notifier=notifier, clock=clock)

    booking = await engine.lifecycle.create_confirmed_from_payment(
        event_id=GALA_EVENT_ID,
        table_id=3,
        seat_numbers=[1, 2],
        customer_email="guest@example.com",
        payment_reference="pi_1",
        amount_cents=30000,
    )
    await engine.notifications.drain()

    assert notifier.attempts == 1
    stored = await store.get_booking(booking.id)
    assert stored.status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_manual_bookings_send_no_confirmation(engine, notifier):
    await engine.lifecycle.create_manual(
        event_id=GALA_EVENT_ID,
        table_id=2,
        party_size=2,
        customer_email="walkin@example.com",
        status=BookingStatus.COMP,
        staff_id=900,
    )
    await engine.notifications.drain()

    assert notifier.sent_emails == []


@pytest.mark.asyncio
async def test_confirmation_names_event(engine, notifier):
    booking = await engine.lifecycle.create_confirmed_from_payment(
        event_id=GALA_EVENT_ID,
        table_id=3,
        seat_numbers=[1],
        customer_email="guest@example.com",
        payment_reference="pi_2",
        amount_cents=15000,
    )
    await engine.notifications.drain()

    [email] = notifier.sent_emails
    assert email["subject"] == f"Booking Confirmation - #{booking.id} - New Year's Eve Gala"

"""
Tests for the structlog processors and the context bound during
webhook reconciliation.
"""

import pytest
import structlog

from reservation_engine.core.logging import mask_customer_emails, mask_email, service_context
from reservation_engine.payments.events import PaymentEvent


def test_mask_email_keeps_domain():
    assert mask_email("guest@example.com") == "g***@example.com"
    assert mask_email("not-an-email") == "not-an-email"


def test_customer_emails_are_masked_in_events():
    event = mask_customer_emails(
        None, "info", {"event": "confirmation_email_sent", "to": "ada@example.com", "booking_id": 1}
    )

    assert event["to"] == "a***@example.com"
    assert event["booking_id"] == 1


def test_service_context_does_not_override_explicit_keys():
    add = service_context("Table Reservation Engine", "test")

    event = add(None, "info", {"event": "x", "environment": "override"})

    assert event["service"] == "Table Reservation Engine"
    assert event["environment"] == "override"


@pytest.mark.asyncio
async def test_gateway_event_id_is_bound_only_while_reconciling(engine, store, monkeypatch):
    seen = []
    original = store.claim_payment_event

    async def claim(gateway_event_id, event_type, now):
        seen.append(structlog.contextvars.get_contextvars().get("gateway_event_id"))
        return await original(gateway_event_id, event_type, now)

    monkeypatch.setattr(store, "claim_payment_event", claim)
    await engine.reconciler.handle_payment_event(PaymentEvent.model_validate({"id": "evt_ctx", "type": "customer.created"}))

    assert seen == ["evt_ctx"]
    assert "gateway_event_id" not in structlog.contextvars.get_contextvars()

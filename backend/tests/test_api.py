"""
Tests for the HTTP surface: status codes, error bodies and camelCase
payloads.
"""

import json

import pytest
from httpx import AsyncClient

from conftest import GALA_EVENT_ID, STAFF_HEADERS, WEBHOOK_SECRET
from reservation_engine.payments.signature import build_signature_header


def _signed(payload: dict) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode()
    return body, {
        "Content-Type": "application/json",
        "Stripe-Signature": build_signature_header(body, WEBHOOK_SECRET),
    }


async def _hold(client: AsyncClient, table_id: int = 3, **headers):
    return await client.post(
        "/api/v1/seat-holds",
        json={"eventId": GALA_EVENT_ID, "tableId": table_id, "seatNumbers": [1, 2]},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient):
    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "seat_hold_attempts_total" in response.text


@pytest.mark.asyncio
async def test_create_hold(client: AsyncClient):
    response = await _hold(client)

    assert response.status_code == 200
    data = response.json()
    assert data["lockToken"]
    assert data["expiresInMs"] == 1_200_000


@pytest.mark.asyncio
async def test_held_table_returns_conflict_code(client: AsyncClient):
    await _hold(client)

    response = await _hold(client)

    assert response.status_code == 409
    assert response.json()["code"] == "TABLE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_private_event_is_forbidden_without_access(client: AsyncClient):
    body = {"eventId": 3, "tableId": 1, "seatNumbers": [1]}

    denied = await client.post("/api/v1/seat-holds", json=body)
    granted = await client.post("/api/v1/seat-holds", json=body, headers={"X-Event-Access": "true"})

    assert denied.status_code == 403
    assert denied.json()["code"] == "EVENT_PRIVATE"
    assert granted.status_code == 200


@pytest.mark.asyncio
async def test_unknown_event_is_404(client: AsyncClient):
    response = await client.post(
        "/api/v1/seat-holds", json={"eventId": 999, "tableId": 1, "seatNumbers": [1]}
    )

    assert response.status_code == 404
    assert response.json()["code"] == "EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_empty_seat_list_is_rejected(client: AsyncClient):
    response = await client.post(
        "/api/v1/seat-holds", json={"eventId": GALA_EVENT_ID, "tableId": 1, "seatNumbers": []}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_validate_then_expire(client: AsyncClient, clock):
    token = (await _hold(client)).json()["lockToken"]
    body = {"lockToken": token, "eventId": GALA_EVENT_ID, "tableId": 3}

    valid = await client.post("/api/v1/seat-holds/validate", json=body)
    clock.advance(minutes=21)
    expired = await client.post("/api/v1/seat-holds/validate", json=body)

    assert valid.status_code == 200
    assert valid.json() == {"valid": True}
    assert expired.status_code == 410
    assert expired.json()["code"] == "HOLD_EXPIRED"


@pytest.mark.asyncio
async def test_complete_hold_twice(client: AsyncClient):
    token = (await _hold(client)).json()["lockToken"]

    first = await client.post("/api/v1/seat-holds/complete", json={"lockToken": token})
    second = await client.post("/api/v1/seat-holds/complete", json={"lockToken": token})

    assert first.status_code == 200
    assert first.json() == {"success": True}
    assert second.status_code == 404


@pytest.mark.asyncio
async def test_cleanup_requires_staff(client: AsyncClient, clock):
    await _hold(client)
    clock.advance(minutes=21)

    anonymous = await client.post("/api/v1/seat-holds/cleanup")
    staff = await client.post("/api/v1/seat-holds/cleanup", headers=STAFF_HEADERS)

    assert anonymous.status_code == 401
    assert staff.json() == {"expired": 1}


@pytest.mark.asyncio
async def test_availability_endpoints(client: AsyncClient):
    event = await client.get(f"/api/v1/events/{GALA_EVENT_ID}/availability")
    table = await client.get(f"/api/v1/events/{GALA_EVENT_ID}/tables/3/availability")

    assert event.status_code == 200
    assert event.json()["availableTables"] == 10
    assert event.json()["isSoldOut"] is False
    assert table.json() == {"eventId": GALA_EVENT_ID, "tableId": 3, "available": True}


@pytest.mark.asyncio
async def test_webhook_books_and_acknowledges_replay(client: AsyncClient, checkout_event):
    token = (await _hold(client)).json()["lockToken"]
    body, headers = _signed(checkout_event(lock_token=token))

    first = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    replay = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert first.status_code == 200
    assert first.json()["outcome"] == "booked"
    assert replay.status_code == 200
    assert replay.json() == {"received": True, "outcome": "duplicate", "bookingId": None}

    availability = await client.get(f"/api/v1/events/{GALA_EVENT_ID}/availability")
    assert availability.json()["availableTables"] == 9


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(client: AsyncClient, store, checkout_event):
    body = json.dumps(checkout_event()).encode()

    response = await client.post(
        "/api/v1/payments/webhook",
        content=body,
        headers={"Stripe-Signature": "t=1,v1=forged"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SIGNATURE"
    assert store.payment_events == {}


@pytest.mark.asyncio
async def test_webhook_unreadable_charge_is_acknowledged(client: AsyncClient, store):
    body, headers = _signed(
        {"id": "evt_noid", "type": "charge.refunded", "data": {"object": {"payment_intent": "pi_zz"}}}
    )

    response = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json()["outcome"] == "escalated"
    assert store.payment_events["evt_noid"]["outcome"] == "escalated"


@pytest.mark.asyncio
async def test_webhook_authentic_non_event_is_bad_request(client: AsyncClient, store):
    body, headers = _signed({"type": "checkout.session.completed"})

    response = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PAYLOAD"
    assert store.payment_events == {}


@pytest.mark.asyncio
async def test_admin_booking_flow(client: AsyncClient):
    created = await client.post(
        "/api/v1/admin/bookings",
        json={
            "eventId": GALA_EVENT_ID,
            "tableId": 2,
            "partySize": 4,
            "customerEmail": "walkin@example.com",
            "status": "reserved",
        },
        headers=STAFF_HEADERS,
    )
    assert created.status_code == 201
    booking = created.json()
    assert booking["status"] == "reserved"
    assert booking["totalPaidCents"] == 0

    paid = await client.post(
        f"/api/v1/admin/bookings/{booking['id']}/mark-paid",
        json={"expectedVersion": booking["version"], "amountCents": 40000},
        headers=STAFF_HEADERS,
    )
    assert paid.status_code == 200
    assert paid.json()["status"] == "confirmed"

    stale = await client.patch(
        f"/api/v1/admin/bookings/{booking['id']}",
        json={"expectedVersion": booking["version"], "partySize": 2},
        headers=STAFF_HEADERS,
    )
    assert stale.status_code == 409
    assert stale.json()["code"] == "VERSION_CONFLICT"

    canceled = await client.post(
        f"/api/v1/admin/bookings/{booking['id']}/cancel",
        json={"expectedVersion": paid.json()["version"]},
        headers=STAFF_HEADERS,
    )
    assert canceled.json()["status"] == "canceled"


@pytest.mark.asyncio
async def test_admin_edit_blocked_by_hold(client: AsyncClient):
    await _hold(client, table_id=7)
    created = await client.post(
        "/api/v1/admin/bookings",
        json={"eventId": GALA_EVENT_ID, "tableId": 2, "partySize": 2, "customerEmail": "walkin@example.com"},
        headers=STAFF_HEADERS,
    )

    response = await client.patch(
        f"/api/v1/admin/bookings/{created.json()['id']}",
        json={"expectedVersion": 1, "tableId": 7},
        headers=STAFF_HEADERS,
    )

    assert response.status_code == 409
    assert response.json()["code"] == "TABLE_ON_HOLD"
    assert "ON HOLD (20 minutes remaining)" in response.json()["detail"]

    status = await client.get(
        f"/api/v1/admin/events/{GALA_EVENT_ID}/tables/7/status", headers=STAFF_HEADERS
    )
    assert status.json()["editable"] is False


@pytest.mark.asyncio
async def test_admin_routes_require_staff_id(client: AsyncClient):
    response = await client.get("/api/v1/admin/reconciliation-issues")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reconciliation_issues_listed(client: AsyncClient, clock, checkout_event):
    token = (await _hold(client)).json()["lockToken"]
    clock.advance(minutes=21)
    await _hold(client)
    body, headers = _signed(checkout_event(lock_token=token))

    ack = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    issues = await client.get("/api/v1/admin/reconciliation-issues", headers=STAFF_HEADERS)

    assert ack.json()["outcome"] == "escalated"
    [issue] = issues.json()
    assert issue["kind"] == "seat_lost"
    assert issue["paymentReference"] == "pi_1"

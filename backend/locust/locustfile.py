"""
Locust Load Test Suite

Targets a running engine with one seeded event (LOAD_EVENT_ID) that has
tables LOAD_TABLE_IDS.

Run scenarios:
  locust -f locustfile.py --tags contention   # Many guests, one table
  locust -f locustfile.py --tags throughput   # Availability reads
  locust -f locustfile.py --tags webhook      # Signed deliveries + replays
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import json
import os
import random
import uuid

from locust import HttpUser, between, tag, task

from reservation_engine.payments.signature import build_signature_header

EVENT_ID = int(os.getenv("LOAD_EVENT_ID", "1"))
TABLE_IDS = [int(t) for t in os.getenv("LOAD_TABLE_IDS", "1,2,3,4,5,6,7,8,9,10").split(",")]
CONTESTED_TABLE_ID = TABLE_IDS[0]
WEBHOOK_SECRET = os.getenv("PAYMENT_WEBHOOK_SECRET", "whsec_change_me_in_production")

# Events already delivered, replayed to exercise deduplication
SENT_EVENTS = []


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - every user races for the same table

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM seat_holds
      WHERE event_id = X AND table_id = Y AND status = 'active';
    Should be <= 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = random.randint(100000, 999999)

    @tag("contention")
    @task
    def hold_contested_table(self):
        with self.client.post(
            "/api/v1/seat-holds",
            json={"eventId": EVENT_ID, "tableId": CONTESTED_TABLE_ID, "seatNumbers": [1, 2]},
            headers={"X-User-Id": str(self.user_id)},
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: someone else holds it
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - cached availability vs live table checks

    Run with CACHE_BACKEND=memory and CACHE_BACKEND=redis and compare
    P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def event_availability(self):
        self.client.get(
            f"/api/v1/events/{EVENT_ID}/availability",
            name="/api/v1/events/{id}/availability [cached]",
        )

    @tag("throughput", "read")
    @task(3)
    def table_availability(self):
        table_id = random.choice(TABLE_IDS)
        self.client.get(
            f"/api/v1/events/{EVENT_ID}/tables/{table_id}/availability",
            name="/api/v1/events/{id}/tables/{tid}/availability",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class WebhookUser(HttpUser):
    """
    TEST 3: Payment webhooks - new deliveries and replays

    Every response must be 200; replays must come back as duplicate.
    """
    wait_time = between(0.1, 0.5)

    def _post_event(self, event: dict, name: str):
        body = json.dumps(event).encode()
        headers = {
            "Content-Type": "application/json",
            "Stripe-Signature": build_signature_header(body, WEBHOOK_SECRET),
        }
        with self.client.post(
            "/api/v1/payments/webhook", data=body, headers=headers, name=name, catch_response=True
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            else:
                resp.failure(f"Expected 200, got {resp.status_code}")
        return resp

    @tag("webhook")
    @task(3)
    def checkout_completed(self):
        event = {
            "id": f"evt_{uuid.uuid4().hex}",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": f"cs_{uuid.uuid4().hex}",
                    "payment_intent": f"pi_{uuid.uuid4().hex}",
                    "amount_total": 25000,
                    "payment_status": "paid",
                    "customer_details": {"email": "load@test.com"},
                    "metadata": {
                        "eventId": str(EVENT_ID),
                        "tableId": str(random.choice(TABLE_IDS)),
                        "seats": "1,2",
                    },
                }
            },
        }
        self._post_event(event, name="/api/v1/payments/webhook [new]")
        SENT_EVENTS.append(event)

    @tag("webhook")
    @task(1)
    def replay(self):
        if not SENT_EVENTS:
            return
        self._post_event(random.choice(SENT_EVENTS), name="/api/v1/payments/webhook [replay]")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    @tag("edge")
    @task
    def invalid_event_id(self):
        with self.client.post(
            "/api/v1/seat-holds",
            json={"eventId": 999999, "tableId": CONTESTED_TABLE_ID, "seatNumbers": [1]},
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def empty_seats(self):
        with self.client.post(
            "/api/v1/seat-holds",
            json={"eventId": EVENT_ID, "tableId": CONTESTED_TABLE_ID, "seatNumbers": []},
            catch_response=True,
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def unsigned_webhook(self):
        with self.client.post(
            "/api/v1/payments/webhook",
            data=b'{"id": "evt_forged", "type": "checkout.session.completed"}',
            catch_response=True,
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def admin_without_staff_id(self):
        with self.client.post("/api/v1/seat-holds/cleanup", catch_response=True) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")

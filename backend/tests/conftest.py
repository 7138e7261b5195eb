"""
Pytest fixtures: a seeded in-memory inventory store, a controllable
clock, a fully wired engine and an HTTP client bound to it.

The engine runs on InMemoryInventoryStore so the suite needs no
database; tests against PostgreSQL live in test_sqlalchemy_store.py.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from reservation_engine.api.deps import get_engine
from reservation_engine.core.config import Settings
from reservation_engine.domain.records import EventRecord, EventType, TableRecord
from reservation_engine.main import app
from reservation_engine.notifications import LoggingEmailNotifier
from reservation_engine.services.availability_cache import InMemoryAvailabilityCache
from reservation_engine.services.engine import ReservationEngine, build_engine
from reservation_engine.storage.memory import InMemoryInventoryStore

NOW = datetime(2026, 11, 1, 18, 0, tzinfo=timezone.utc)

GALA_EVENT_ID = 1
TICKET_EVENT_ID = 2
PRIVATE_EVENT_ID = 3
SOON_EVENT_ID = 4

WEBHOOK_SECRET = "whsec_test_secret"
STAFF_HEADERS = {"X-Staff-Id": "900"}


class FrozenClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        STORE_BACKEND="memory",
        CACHE_BACKEND="memory",
        BACKGROUND_WORKERS_ENABLED=False,
        PAYMENT_WEBHOOK_SECRET=WEBHOOK_SECRET,
    )


@pytest.fixture
def store() -> InMemoryInventoryStore:
    """Gala with 10 tables / 40 seats, a ticket-only night, a private event and one about to start."""
    store = InMemoryInventoryStore()
    store.add_event(EventRecord(
        id=GALA_EVENT_ID,
        title="New Year's Eve Gala",
        date=NOW + timedelta(days=60),
        event_type=EventType.FULL,
        total_seats=40,
        total_tables=10,
        available_seats=40,
        available_tables=10,
    ))
    store.add_event(EventRecord(
        id=TICKET_EVENT_ID,
        title="Jazz in the Bar",
        date=NOW + timedelta(days=30),
        event_type=EventType.TICKET_ONLY,
        ticket_capacity=100,
        available_seats=100,
        available_tables=1,
    ))
    store.add_event(EventRecord(
        id=PRIVATE_EVENT_ID,
        title="Winemaker's Dinner",
        date=NOW + timedelta(days=45),
        total_seats=16,
        total_tables=4,
        is_private=True,
    ))
    store.add_event(EventRecord(
        id=SOON_EVENT_ID,
        title="Thursday Supper Club",
        date=NOW + timedelta(days=2),
        total_seats=40,
        total_tables=10,
    ))
    for table_id in range(1, 11):
        store.add_table(TableRecord(id=table_id, venue_id=1, table_number=table_id, capacity=4))
    return store


@pytest.fixture
def notifier() -> LoggingEmailNotifier:
    return LoggingEmailNotifier()


@pytest.fixture
def engine(settings, store, clock, notifier) -> ReservationEngine:
    return build_engine(
        settings,
        store=store,
        cache=InMemoryAvailabilityCache(settings.AVAILABILITY_CACHE_TTL, clock),
        notifier=notifier,
        clock=clock,
    )


@pytest_asyncio.fixture(scope="function")
async def client(engine: ReservationEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests are served by the test engine."""
    app.dependency_overrides[get_engine] = lambda: engine

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def checkout_event():
    """Factory for checkout.session.completed payloads as the gateway sends them."""

    def make(
        event_id: str = "evt_1",
        table_id: int | None = 3,
        seats: str = "1,2",
        lock_token: str | None = None,
        payment_intent: str = "pi_1",
        amount_total: int = 30000,
        email: str = "guest@example.com",
        payment_status: str = "paid",
        user_id: int | None = 42,
        gala_event_id: int = GALA_EVENT_ID,
        **metadata,
    ) -> dict:
        meta = {
            "eventId": str(gala_event_id),
            "seats": seats,
            "guestNames": '["Ada Lovelace", "Charles Babbage"]',
            "foodSelections": '[{"kind": "entree", "item_id": 7, "quantity": 2}]',
            "wineSelections": '[{"kind": "wine", "item_id": 31, "quantity": 1}]',
            **metadata,
        }
        if table_id is not None:
            meta["tableId"] = str(table_id)
        if lock_token:
            meta["lockToken"] = lock_token
        if user_id is not None:
            meta["userId"] = str(user_id)
        return {
            "id": event_id,
            "type": "checkout.session.completed",
            "created": 1793556000,
            "data": {
                "object": {
                    "id": f"cs_{event_id}",
                    "payment_intent": payment_intent,
                    "amount_total": amount_total,
                    "payment_status": payment_status,
                    "customer_details": {"email": email},
                    "metadata": meta,
                }
            },
        }

    return make

"""
Availability calculator.

Availability is always derived from bookings, never maintained by
increment/decrement:

  booked_seats  = sum(party_size) over bookings not canceled/refunded
  booked_tables = distinct tables held by blocking bookings
                  (confirmed, reserved, comp, modified)
  available     = max(0, total - booked)

Reads may be served from the injected cache. Writers call invalidate()
or refresh_event() after any booking status change for the event.
is_table_available() is always live.
"""

from reservation_engine.core.exceptions import EventNotFoundError
from reservation_engine.core.logging import get_logger
from reservation_engine.domain.records import Availability, EventRecord, EventType
from reservation_engine.services.availability_cache import AvailabilityCache
from reservation_engine.storage.interface import InventoryStore

logger = get_logger(__name__)


class AvailabilityCalculator:

    def __init__(self, store: InventoryStore, cache: AvailabilityCache):
        self.store = store
        self.cache = cache

    async def compute_availability(self, event_id: int, use_cache: bool = True) -> Availability:
        if use_cache:
            cached = await self.cache.get(event_id)
            if cached is not None:
                return cached

        event = await self.store.get_event_by_id(event_id)
        if event is None:
            raise EventNotFoundError(event_id)

        totals = await self.store.summarize_bookings(event_id)
        availability = calculate(event, totals.booked_seats, totals.booked_tables)

        await self.cache.set(event_id, availability)
        return availability

    async def is_table_available(self, event_id: int, table_id: int) -> bool:
        booking = await self.store.find_blocking_booking(event_id, table_id)
        return booking is None

    async def invalidate(self, event_id: int) -> None:
        await self.cache.invalidate(event_id)

    async def refresh_event(self, event_id: int) -> Availability:
        """Recompute from live bookings and persist the event's counters."""
        await self.cache.invalidate(event_id)
        availability = await self.compute_availability(event_id, use_cache=False)
        await self.store.update_event(
            event_id,
            available_seats=availability.available_seats,
            available_tables=availability.available_tables,
        )
        logger.info(
            "availability_refreshed",
            event_id=event_id,
            available_seats=availability.available_seats,
            available_tables=availability.available_tables,
            sold_out=availability.is_sold_out,
        )
        return availability

    async def refresh_all(self) -> int:
        events = await self.store.list_events()
        for event in events:
            await self.refresh_event(event.id)
        return len(events)


def calculate(event: EventRecord, booked_seats: int, booked_tables: int) -> Availability:
    if event.event_type == EventType.TICKET_ONLY:
        total_seats = event.ticket_capacity
        total_tables = 1
        available_seats = max(0, total_seats - booked_seats)
        available_tables = total_tables
        is_sold_out = available_seats == 0
    else:
        total_seats = event.total_seats
        total_tables = event.total_tables
        available_seats = max(0, total_seats - booked_seats)
        available_tables = max(0, total_tables - booked_tables)
        is_sold_out = available_seats == 0 or available_tables == 0

    return Availability(
        event_id=event.id,
        available_seats=available_seats,
        available_tables=available_tables,
        total_seats=total_seats,
        total_tables=total_tables,
        is_sold_out=is_sold_out,
    )

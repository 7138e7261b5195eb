"""
Availability endpoints. Event totals may be served from the cache; the
single-table check always reads live bookings.
"""

from fastapi import APIRouter, Depends

from reservation_engine.api.deps import get_engine
from reservation_engine.core.exceptions import EventNotFoundError, TableNotFoundError
from reservation_engine.schemas.availability import AvailabilityResponse, TableAvailabilityResponse
from reservation_engine.services.engine import ReservationEngine

router = APIRouter(prefix="/events", tags=["Availability"])


@router.get("/{event_id}/availability", response_model=AvailabilityResponse)
async def get_event_availability(
    event_id: int,
    engine: ReservationEngine = Depends(get_engine),
):
    availability = await engine.availability.compute_availability(event_id)
    return AvailabilityResponse(
        event_id=availability.event_id,
        available_seats=availability.available_seats,
        available_tables=availability.available_tables,
        total_seats=availability.total_seats,
        total_tables=availability.total_tables,
        is_sold_out=availability.is_sold_out,
    )


@router.get("/{event_id}/tables/{table_id}/availability", response_model=TableAvailabilityResponse)
async def get_table_availability(
    event_id: int,
    table_id: int,
    engine: ReservationEngine = Depends(get_engine),
):
    if await engine.store.get_event_by_id(event_id) is None:
        raise EventNotFoundError(event_id)
    if await engine.store.get_table_by_id(table_id) is None:
        raise TableNotFoundError(table_id)
    available = await engine.availability.is_table_available(event_id, table_id)
    return TableAvailabilityResponse(event_id=event_id, table_id=table_id, available=available)

from reservation_engine.schemas.base import CamelModel


class AvailabilityResponse(CamelModel):
    event_id: int
    available_seats: int
    available_tables: int
    total_seats: int
    total_tables: int
    is_sold_out: bool


class TableAvailabilityResponse(CamelModel):
    event_id: int
    table_id: int
    available: bool

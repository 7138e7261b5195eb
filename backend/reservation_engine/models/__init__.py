from reservation_engine.models.event import Event
from reservation_engine.models.table import VenueTable
from reservation_engine.models.booking import Booking
from reservation_engine.models.seat_hold import SeatHold
from reservation_engine.models.payment_event import PaymentEventLog, ReconciliationIssueRow

__all__ = [
    "Event", "VenueTable", "Booking", "SeatHold",
    "PaymentEventLog", "ReconciliationIssueRow",
]

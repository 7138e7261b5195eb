from reservation_engine.schemas.availability import AvailabilityResponse, TableAvailabilityResponse
from reservation_engine.schemas.base import ErrorResponse
from reservation_engine.schemas.bookings import (
    BookingCancel,
    BookingModify,
    BookingRefund,
    BookingResponse,
    ManualBookingCreate,
    MarkPaid,
    ReconciliationIssueResponse,
    TableStatusResponse,
)
from reservation_engine.schemas.holds import (
    SeatHoldCleanupResponse,
    SeatHoldComplete,
    SeatHoldCompleteResponse,
    SeatHoldCreate,
    SeatHoldResponse,
    SeatHoldValidate,
    SeatHoldValidateResponse,
)
from reservation_engine.schemas.payments import PaymentAckResponse

__all__ = [
    "AvailabilityResponse", "TableAvailabilityResponse", "ErrorResponse",
    "BookingCancel", "BookingModify", "BookingRefund", "BookingResponse",
    "ManualBookingCreate", "MarkPaid", "ReconciliationIssueResponse", "TableStatusResponse",
    "SeatHoldCleanupResponse", "SeatHoldComplete", "SeatHoldCompleteResponse",
    "SeatHoldCreate", "SeatHoldResponse", "SeatHoldValidate", "SeatHoldValidateResponse",
    "PaymentAckResponse",
]

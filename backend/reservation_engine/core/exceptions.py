"""
Domain exceptions.

Every error carries the status code and machine-readable code the API
should report, so the transport never has to inspect domain state.
Expected business outcomes (table unavailable, hold expired) are returned
as values by the validators; these are raised only at command boundaries.
"""


class ReservationError(Exception):
    """Base exception for all reservation-engine errors."""

    status_code = 400
    code = "RESERVATION_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class EventNotFoundError(ReservationError):
    status_code = 404
    code = "EVENT_NOT_FOUND"

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found")


class TableNotFoundError(ReservationError):
    status_code = 404
    code = "TABLE_NOT_FOUND"

    def __init__(self, table_id: int):
        self.table_id = table_id
        super().__init__(f"Table {table_id} not found")


class BookingNotFoundError(ReservationError):
    status_code = 404
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class InvalidStateTransitionError(ReservationError):
    """Raised when an illegal booking state transition is attempted."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition attempted: {from_state} -> {to_state}"
        )


class BookingVersionConflictError(ReservationError):
    """The booking changed since the caller read it; re-read and retry."""

    status_code = 409
    code = "VERSION_CONFLICT"

    def __init__(self, booking_id: int, expected_version: int):
        self.booking_id = booking_id
        self.expected_version = expected_version
        super().__init__(
            f"Booking {booking_id} was modified by someone else "
            f"(expected version {expected_version})"
        )


class TableConflictError(ReservationError):
    """The table is occupied by a blocking booking or an active hold."""

    status_code = 409
    code = "TABLE_UNAVAILABLE"


class DuplicateBookingError(ReservationError):
    status_code = 409
    code = "DUPLICATE_BOOKING"


class PaymentSignatureError(ReservationError):
    """Webhook payload failed authenticity checks. Nothing is processed."""

    status_code = 400
    code = "INVALID_SIGNATURE"


class StorageUnavailableError(ReservationError):
    """The inventory store could not be reached."""

    status_code = 503
    code = "STORAGE_UNAVAILABLE"

"""
Guest reservation flow: the checks a guest passes before a table is held.

Every rejection is returned as a HoldOutcome carrying a machine-readable
code; only missing events/tables and storage outages raise.
"""

from dataclasses import dataclass
from typing import Optional

from reservation_engine.core.exceptions import EventNotFoundError, TableNotFoundError
from reservation_engine.core.logging import get_logger
from reservation_engine.domain.holds import Clock, utc_now
from reservation_engine.services.seat_holds import SeatHoldManager
from reservation_engine.services.validator import BookingValidator
from reservation_engine.storage.interface import InventoryStore

logger = get_logger(__name__)

TABLE_UNAVAILABLE = "TABLE_UNAVAILABLE"
DUPLICATE_BOOKING = "DUPLICATE_BOOKING"
TICKET_CUTOFF_PASSED = "TICKET_CUTOFF_PASSED"
EVENT_PRIVATE = "EVENT_PRIVATE"
HOLD_FAILED = "HOLD_FAILED"


@dataclass(frozen=True)
class HoldOutcome:
    lock_token: Optional[str] = None
    expires_in_ms: Optional[int] = None
    code: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.lock_token is not None


class ReservationService:

    def __init__(
        self,
        store: InventoryStore,
        holds: SeatHoldManager,
        validator: BookingValidator,
        cutoff_days: int = 3,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.holds = holds
        self.validator = validator
        self.cutoff_days = cutoff_days
        self.clock = clock

    async def create_hold(
        self,
        event_id: int,
        table_id: int,
        seat_numbers: list[int],
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
        user_has_access: bool = False,
    ) -> HoldOutcome:
        event = await self.store.get_event_by_id(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        if await self.store.get_table_by_id(table_id) is None:
            raise TableNotFoundError(table_id)

        if not self.validator.validate_event_access(event.is_private, user_has_access):
            return self._reject(EVENT_PRIVATE, "This event is private", event_id, table_id)

        if not self.validator.within_ticket_cutoff(event.date, self.cutoff_days, self.clock()):
            return self._reject(
                TICKET_CUTOFF_PASSED,
                f"Bookings close {self.cutoff_days} days before the event",
                event_id,
                table_id,
            )

        if user_id is not None and not await self.validator.no_duplicate_booking(user_id, event_id):
            return self._reject(
                DUPLICATE_BOOKING,
                "You already have a booking for this event",
                event_id,
                table_id,
            )

        if not await self.validator.table_available_for_booking(table_id, event_id):
            return self._reject(
                TABLE_UNAVAILABLE, "This table is no longer available", event_id, table_id
            )

        token = await self.holds.create_hold(
            event_id, table_id, seat_numbers, owner_id=user_id, session_id=session_id
        )
        if token is not None:
            return HoldOutcome(lock_token=token, expires_in_ms=self.holds.ttl_ms)

        # Lost the race between the check and the insert, or storage failed.
        if not await self.validator.table_available_for_booking(table_id, event_id):
            return self._reject(
                TABLE_UNAVAILABLE, "This table is no longer available", event_id, table_id
            )
        return self._reject(HOLD_FAILED, "Could not hold the table, please try again", event_id, table_id)

    def _reject(self, code: str, message: str, event_id: int, table_id: int) -> HoldOutcome:
        logger.warning("hold_rejected", code=code, event_id=event_id, table_id=table_id)
        return HoldOutcome(code=code, message=message)

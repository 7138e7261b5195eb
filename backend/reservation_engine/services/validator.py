"""
Booking validator: side-effect-free decisions over live storage state.

Nothing here raises for an expected business outcome; unavailable,
duplicate and on-hold are all returned as values. Storage failures
propagate.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from reservation_engine.domain.holds import Clock, remaining_minutes, utc_now
from reservation_engine.storage.interface import InventoryStore


@dataclass(frozen=True)
class ReassignmentCheck:
    valid: bool
    reason: Optional[str] = None
    code: Optional[str] = None


class BookingValidator:

    def __init__(self, store: InventoryStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    async def table_available_for_booking(self, table_id: int, event_id: int) -> bool:
        """No blocking booking and no live hold on the pair."""
        if await self.store.find_blocking_booking(event_id, table_id):
            return False
        holds = await self.store.get_active_seat_holds(event_id, table_id, self.clock())
        return not holds

    async def no_duplicate_booking(self, user_id: int, event_id: int) -> bool:
        """One booking per user per event."""
        return await self.store.find_user_booking(user_id, event_id) is None

    @staticmethod
    def within_ticket_cutoff(
        event_date: datetime,
        cutoff_days: int = 3,
        now: Optional[datetime] = None,
    ) -> bool:
        now = now or utc_now()
        return now <= event_date - timedelta(days=cutoff_days)

    @staticmethod
    def validate_event_access(is_private: bool, user_has_access: bool = False) -> bool:
        if not is_private:
            return True
        return user_has_access

    async def validate_table_reassignment(
        self,
        new_table_id: int,
        event_id: int,
        exclude_booking_id: Optional[int] = None,
    ) -> ReassignmentCheck:
        """
        Can an admin move a booking onto this table? The reason string is
        shown to staff verbatim, so it names the buyer or the time left.
        """
        label = await self._table_label(new_table_id)

        booking = await self.store.find_blocking_booking(
            event_id, new_table_id, exclude_booking_id=exclude_booking_id
        )
        if booking is not None:
            return ReassignmentCheck(
                valid=False,
                reason=f"Cannot modify seat {label} - currently SOLD to {booking.customer_email}",
                code="TABLE_SOLD",
            )

        now = self.clock()
        holds = await self.store.get_active_seat_holds(event_id, new_table_id, now)
        if holds:
            minutes = remaining_minutes(holds[0], now)
            return ReassignmentCheck(
                valid=False,
                reason=f"Cannot modify seat {label} - currently ON HOLD ({minutes} minutes remaining)",
                code="TABLE_ON_HOLD",
            )

        return ReassignmentCheck(valid=True)

    async def _table_label(self, table_id: int) -> str:
        table = await self.store.get_table_by_id(table_id)
        return str(table.table_number) if table else str(table_id)

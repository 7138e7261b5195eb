"""
Booking notifications.

Delivery is fire-and-forget: a confirmation is scheduled as a background
task after the booking is committed, and a failed send is logged and
counted, never raised back into the booking flow.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from reservation_engine.core.logging import get_logger
from reservation_engine.core.metrics import notification_failures
from reservation_engine.domain.records import BookingRecord, EventRecord

logger = get_logger(__name__)


class BookingNotifier(ABC):

    @abstractmethod
    async def send_booking_confirmation(
        self, booking: BookingRecord, event: Optional[EventRecord]
    ) -> bool:
        pass


class LoggingEmailNotifier(BookingNotifier):
    """Logs confirmations instead of sending them. Keeps them for inspection."""

    def __init__(self):
        self.sent_emails: list[dict] = []

    async def send_booking_confirmation(
        self, booking: BookingRecord, event: Optional[EventRecord]
    ) -> bool:
        title = event.title if event else f"event {booking.event_id}"
        email = {
            "to": booking.customer_email,
            "subject": f"Booking Confirmation - #{booking.id} - {title}",
            "booking_id": booking.id,
            "sent_at": datetime.now(timezone.utc),
        }
        self.sent_emails.append(email)
        logger.info("confirmation_email_sent", booking_id=booking.id, to=booking.customer_email)
        return True


class NotificationDispatcher:

    def __init__(self, notifier: BookingNotifier):
        self.notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    def schedule_confirmation(
        self, booking: BookingRecord, event: Optional[EventRecord]
    ) -> asyncio.Task:
        task = asyncio.create_task(self._send_confirmation(booking, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _send_confirmation(
        self, booking: BookingRecord, event: Optional[EventRecord]
    ) -> None:
        try:
            sent = await self.notifier.send_booking_confirmation(booking, event)
        except Exception as e:
            sent = False
            logger.exception("confirmation_email_error", booking_id=booking.id, error=str(e))
        if not sent:
            notification_failures.inc()
            logger.error(
                "confirmation_email_failed",
                booking_id=booking.id,
                to=booking.customer_email,
                action="admin_follow_up",
            )

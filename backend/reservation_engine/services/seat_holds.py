"""
Seat hold manager.

A hold is a 20-minute soft lock on one table for one party, taken when a
guest starts checkout and converted when payment succeeds:

    active -> completed   (payment succeeded)
    active -> expired     (TTL passed, found on read or by the sweep)

Expiry is enforced lazily on read: a hold past its expiry is flipped to
expired the moment anyone validates it, so correctness never waits for
the maintenance sweep. The sweep only keeps the table tidy.
"""

import uuid
from datetime import timedelta
from enum import Enum
from typing import Optional

from reservation_engine.core.exceptions import StorageUnavailableError, TableConflictError
from reservation_engine.core.logging import get_logger
from reservation_engine.core.metrics import holds_swept, record_hold_attempt, record_hold_validation
from reservation_engine.domain.holds import Clock, hold_expiry, is_expired, utc_now
from reservation_engine.domain.records import HoldStatus, SeatHoldDraft, SeatHoldRecord
from reservation_engine.storage.interface import InventoryStore

logger = get_logger(__name__)


class HoldValidation(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


class SeatHoldManager:

    def __init__(
        self,
        store: InventoryStore,
        ttl_minutes: int = 20,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock

    @property
    def ttl_ms(self) -> int:
        return int(self.ttl.total_seconds() * 1000)

    async def create_hold(
        self,
        event_id: int,
        table_id: int,
        seat_numbers: list[int],
        owner_id: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Persist an active hold and return its lock token.
        Returns None if the hold could not be written, either because another
        writer got the table first or because storage failed.
        """
        lock_token = str(uuid.uuid4())
        now = self.clock()
        draft = SeatHoldDraft(
            event_id=event_id,
            table_id=table_id,
            seat_numbers=list(seat_numbers),
            user_id=owner_id,
            session_id=session_id or lock_token,
            lock_token=lock_token,
            hold_start_time=now,
            hold_expiry=hold_expiry(now, self.ttl),
        )

        try:
            await self.store.create_seat_hold(draft)
        except TableConflictError as e:
            record_hold_attempt("conflict")
            logger.warning(
                "hold_conflict",
                event_id=event_id,
                table_id=table_id,
                reason=e.code,
            )
            return None
        except StorageUnavailableError as e:
            record_hold_attempt("error")
            logger.error("hold_create_failed", event_id=event_id, table_id=table_id, error=str(e))
            return None

        record_hold_attempt("created")
        logger.info(
            "hold_created",
            event_id=event_id,
            table_id=table_id,
            seats=list(seat_numbers),
            expires_at=draft.hold_expiry.isoformat(),
        )
        return lock_token

    async def check_hold(self, lock_token: str, event_id: int, table_id: int) -> HoldValidation:
        hold = await self.store.get_seat_hold_by_token(lock_token)
        if hold is None:
            record_hold_validation("invalid")
            return HoldValidation.INVALID

        if await self._expire_if_stale(hold):
            record_hold_validation("expired")
            return HoldValidation.EXPIRED
        if hold.status == HoldStatus.EXPIRED:
            record_hold_validation("expired")
            return HoldValidation.EXPIRED

        if (
            hold.event_id == event_id
            and hold.table_id == table_id
            and hold.status == HoldStatus.ACTIVE
        ):
            record_hold_validation("valid")
            return HoldValidation.VALID

        record_hold_validation("invalid")
        return HoldValidation.INVALID

    async def validate_hold(self, lock_token: str, event_id: int, table_id: int) -> bool:
        return await self.check_hold(lock_token, event_id, table_id) == HoldValidation.VALID

    async def complete_hold(self, lock_token: str) -> bool:
        """
        active -> completed. Completing a missing, completed or expired hold
        returns False and changes nothing, so duplicate payment deliveries
        are harmless.
        """
        hold = await self.store.get_seat_hold_by_token(lock_token)
        if hold is None:
            return False
        if await self._expire_if_stale(hold):
            logger.info("hold_complete_after_expiry", hold_id=hold.id)
            return False

        completed = await self.store.complete_seat_hold(hold.id)
        if completed:
            logger.info("hold_completed", hold_id=hold.id, event_id=hold.event_id, table_id=hold.table_id)
        return completed

    async def expire_stale_holds(self) -> int:
        count = await self.store.expire_stale_holds(self.clock())
        if count:
            holds_swept.inc(count)
            logger.info("stale_holds_expired", count=count)
        return count

    async def _expire_if_stale(self, hold: SeatHoldRecord) -> bool:
        if hold.status == HoldStatus.ACTIVE and is_expired(hold, self.clock()):
            await self.store.expire_seat_hold(hold.id)
            logger.info("hold_expired_on_read", hold_id=hold.id, event_id=hold.event_id, table_id=hold.table_id)
            return True
        return False

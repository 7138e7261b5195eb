"""
Pure seat-hold time helpers.

Expiry is decided from a hold and an explicit `now`, so callers (and
tests) control the clock instead of patching it.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Callable

from reservation_engine.domain.records import HoldStatus, SeatHoldRecord

Clock = Callable[[], datetime]

DEFAULT_HOLD_TTL = timedelta(minutes=20)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hold_expiry(start: datetime, ttl: timedelta = DEFAULT_HOLD_TTL) -> datetime:
    return start + ttl


def is_expired(hold: SeatHoldRecord, now: datetime) -> bool:
    return now > hold.hold_expiry


def is_live(hold: SeatHoldRecord, now: datetime) -> bool:
    """Active and not yet past its expiry."""
    return hold.status == HoldStatus.ACTIVE and not is_expired(hold, now)


def remaining_minutes(hold: SeatHoldRecord, now: datetime) -> int:
    seconds = (hold.hold_expiry - now).total_seconds()
    return max(0, math.ceil(seconds / 60))

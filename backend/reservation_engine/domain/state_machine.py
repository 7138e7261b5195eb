from enum import Enum
from typing import Dict, FrozenSet, Set

from reservation_engine.core.exceptions import InvalidStateTransitionError


class BookingStatus(str, Enum):
    PENDING = "pending"
    RESERVED = "reserved"
    COMP = "comp"
    CONFIRMED = "confirmed"
    MODIFIED = "modified"
    REFUNDED = "refunded"
    CANCELED = "canceled"


# Statuses that occupy a table for an event
BLOCKING_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.RESERVED,
    BookingStatus.COMP,
    BookingStatus.MODIFIED,
})

RELEASED_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.CANCELED,
    BookingStatus.REFUNDED,
})


class BookingStateMachine:
    """
    Central lifecycle controller for booking transitions.

    pending -> reserved | comp | confirmed
    reserved | modified -> confirmed (offline payment received)
    reserved | comp | confirmed | modified -> modified (admin edit)
    any non-terminal -> canceled | refunded
    """

    _ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
        BookingStatus.PENDING: {
            BookingStatus.RESERVED,
            BookingStatus.COMP,
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.RESERVED: {
            BookingStatus.CONFIRMED,
            BookingStatus.MODIFIED,
            BookingStatus.CANCELED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.COMP: {
            BookingStatus.MODIFIED,
            BookingStatus.CANCELED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.CONFIRMED: {
            BookingStatus.MODIFIED,
            BookingStatus.CANCELED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.MODIFIED: {
            BookingStatus.CONFIRMED,
            BookingStatus.MODIFIED,
            BookingStatus.CANCELED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.CANCELED: set(),
        BookingStatus.REFUNDED: set(),
    }

    @classmethod
    def can_transition(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> bool:
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def is_terminal(cls, status: BookingStatus) -> bool:
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @classmethod
    def get_allowed_transitions(
        cls, status: BookingStatus
    ) -> Set[BookingStatus]:
        cls._ensure_valid_status(status)
        return set(cls._ALLOWED_TRANSITIONS.get(status, set()))

    @staticmethod
    def releases_inventory(status: BookingStatus) -> bool:
        """True when entering this status frees the table for the event."""
        return status in RELEASED_STATUSES

    @staticmethod
    def _ensure_valid_status(status: BookingStatus) -> None:
        if not isinstance(status, BookingStatus):
            raise TypeError(
                f"Expected BookingStatus, got {type(status)}"
            )

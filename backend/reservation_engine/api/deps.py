"""
Request dependencies.

Identity is established upstream; this service only reads the ids the
auth layer forwards.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request, status

from reservation_engine.services.engine import ReservationEngine


def get_engine(request: Request) -> ReservationEngine:
    return request.app.state.engine


async def get_optional_user_id(
    x_user_id: Optional[int] = Header(default=None),
) -> Optional[int]:
    return x_user_id


async def get_event_access(
    x_event_access: bool = Header(default=False),
) -> bool:
    """Set by the auth layer when the caller may book private events."""
    return x_event_access


async def get_staff_id(
    x_staff_id: Optional[int] = Header(default=None),
) -> int:
    if x_staff_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Staff identity required",
        )
    return x_staff_id

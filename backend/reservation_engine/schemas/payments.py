from typing import Optional

from reservation_engine.schemas.base import CamelModel


class PaymentAckResponse(CamelModel):
    received: bool
    outcome: str
    booking_id: Optional[int] = None

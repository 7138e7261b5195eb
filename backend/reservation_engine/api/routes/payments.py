"""
Payment gateway webhook.

The signature is checked against the raw body before anything is parsed.
Once authentic, every event is acknowledged with 200, duplicates
included, so the gateway never retries a delivery that was already
handled. Only an infrastructure failure returns an error, which is what
asks the gateway to redeliver.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse

from reservation_engine.api.deps import get_engine
from reservation_engine.core.logging import get_logger
from reservation_engine.payments.signature import construct_payment_event
from reservation_engine.schemas.payments import PaymentAckResponse
from reservation_engine.services.engine import ReservationEngine

logger = get_logger(__name__)
router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/webhook", response_model=PaymentAckResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    engine: ReservationEngine = Depends(get_engine),
):
    payload = await request.body()
    settings = engine.settings

    try:
        event = construct_payment_event(
            payload,
            stripe_signature,
            settings.PAYMENT_WEBHOOK_SECRET,
            tolerance_seconds=settings.PAYMENT_WEBHOOK_TOLERANCE_SECONDS,
        )
    except ValueError as e:
        logger.warning("payment_webhook_malformed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Malformed event payload", "code": "INVALID_PAYLOAD"},
        )

    ack = await engine.reconciler.handle_payment_event(event)
    return PaymentAckResponse(received=ack.received, outcome=ack.outcome.value, booking_id=ack.booking_id)

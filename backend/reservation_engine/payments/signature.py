"""
Payment gateway webhook signatures.

The gateway signs every delivery with a header of the form

    Stripe-Signature: t=1700000000,v1=5257a869e7ec...

Verification is done by the Stripe SDK against the raw body. Any failure
surfaces as PaymentSignatureError, so the event is never processed.
"""

import time
from typing import Optional

import stripe

from reservation_engine.core.exceptions import PaymentSignatureError
from reservation_engine.payments.events import PaymentEvent

DEFAULT_TOLERANCE_SECONDS = stripe.Webhook.DEFAULT_TOLERANCE


def construct_payment_event(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
) -> PaymentEvent:
    """
    Verify the delivery and parse it into a PaymentEvent.

    Raises PaymentSignatureError for a missing, malformed, stale or forged
    signature, and ValueError when an authentic body is not a valid event.
    """
    if not header:
        raise PaymentSignatureError("Missing signature header")

    try:
        stripe.Webhook.construct_event(payload, header, secret, tolerance=tolerance_seconds)
    except stripe.SignatureVerificationError as e:
        raise PaymentSignatureError(str(e.user_message or "Signature verification failed")) from None

    return PaymentEvent.model_validate_json(payload)


def build_signature_header(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Header value as the gateway would send it. Used by tests and load tooling."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}"
    signature = stripe.WebhookSignature._compute_signature(signed, secret)
    return f"t={timestamp},{stripe.WebhookSignature.EXPECTED_SCHEME}={signature}"

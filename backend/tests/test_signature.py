"""
Tests for payment webhook signature checks.
"""

import json
import time

import pytest

from reservation_engine.core.exceptions import PaymentSignatureError
from reservation_engine.payments.signature import build_signature_header, construct_payment_event

SECRET = "whsec_test_secret"
PAYLOAD = json.dumps({"id": "evt_1", "type": "checkout.session.completed"}).encode()


def test_valid_signature_returns_parsed_event():
    header = build_signature_header(PAYLOAD, SECRET)

    event = construct_payment_event(PAYLOAD, header, SECRET)

    assert event.id == "evt_1"
    assert event.type == "checkout.session.completed"


def test_any_matching_signature_passes_during_rotation():
    now = int(time.time())
    good = build_signature_header(PAYLOAD, SECRET, timestamp=now).split(",")[1]
    header = f"t={now},v1=deadbeef,{good}"

    assert construct_payment_event(PAYLOAD, header, SECRET).id == "evt_1"


@pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=00", f"t={int(time.time())}"])
def test_malformed_header_is_rejected(header):
    with pytest.raises(PaymentSignatureError):
        construct_payment_event(PAYLOAD, header, SECRET)


def test_tampered_payload_is_rejected():
    header = build_signature_header(PAYLOAD, SECRET)

    with pytest.raises(PaymentSignatureError):
        construct_payment_event(PAYLOAD.replace(b"evt_1", b"evt_2"), header, SECRET)


def test_wrong_secret_is_rejected():
    header = build_signature_header(PAYLOAD, "whsec_other")

    with pytest.raises(PaymentSignatureError):
        construct_payment_event(PAYLOAD, header, SECRET)


def test_old_signature_is_rejected():
    header = build_signature_header(PAYLOAD, SECRET, timestamp=int(time.time()) - 301)

    with pytest.raises(PaymentSignatureError):
        construct_payment_event(PAYLOAD, header, SECRET, tolerance_seconds=300)


def test_authentic_body_that_is_not_an_event_is_a_value_error():
    body = json.dumps({"type": "checkout.session.completed"}).encode()
    header = build_signature_header(body, SECRET)

    with pytest.raises(ValueError):
        construct_payment_event(body, header, SECRET)

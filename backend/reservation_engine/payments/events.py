"""
Payment gateway webhook payloads.

The gateway posts `{id, type, created, data: {object: {...}}}`. Checkout
metadata is whatever the checkout step attached, flattened to strings:
seats as "1,2", structured values as JSON text. Ticket-only checkouts
have no tableId and carry a quantity instead of seats.
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reservation_engine.domain.selections import Selection, parse_selections

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
DISPUTE_CREATED = "charge.dispute.created"
CHARGE_REFUNDED = "charge.refunded"

SUCCEEDED_TYPES = frozenset({CHECKOUT_COMPLETED, PAYMENT_SUCCEEDED})


class EventData(BaseModel):
    object: dict[str, Any] = Field(default_factory=dict)


class PaymentEvent(BaseModel):
    id: str
    type: str
    created: Optional[int] = None
    data: EventData = Field(default_factory=EventData)


def _json_list(value: Any) -> Any:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError("expected a JSON list") from exc
    return value


class CheckoutMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: int = Field(alias="eventId")
    table_id: Optional[int] = Field(default=None, alias="tableId")
    event_type: Optional[str] = Field(default=None, alias="eventType")
    quantity: Optional[int] = Field(default=None, ge=1)
    seats: list[int] = Field(default_factory=list)
    user_id: Optional[int] = Field(default=None, alias="userId")
    lock_token: Optional[str] = Field(default=None, alias="lockToken")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    guest_names: list[str] = Field(default_factory=list, alias="guestNames")
    food_selections: list[Selection] = Field(default_factory=list, alias="foodSelections")
    wine_selections: list[Selection] = Field(default_factory=list, alias="wineSelections")

    @field_validator("seats", mode="before")
    @classmethod
    def split_seats(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [int(s) for s in value.split(",") if s.strip()]
        return value

    @field_validator("table_id", "user_id", "quantity", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return None if value in ("", "null") else value

    @field_validator("guest_names", mode="before")
    @classmethod
    def decode_guest_names(cls, value: Any) -> Any:
        return _json_list(value)

    @field_validator("food_selections", "wine_selections", mode="before")
    @classmethod
    def decode_selections(cls, value: Any) -> Any:
        return parse_selections(_json_list(value))

    @property
    def selections(self) -> list[Selection]:
        return [*self.food_selections, *self.wine_selections]

    @property
    def party_size(self) -> int:
        """Ticket-only checkouts carry a quantity; table checkouts a seat list."""
        if self.quantity is not None:
            return self.quantity
        return max(1, len(self.seats))


class CustomerDetails(BaseModel):
    email: Optional[str] = None


class CheckoutSession(BaseModel):
    """data.object of a succeeded-payment event."""

    id: str
    payment_intent: Optional[str] = None
    amount_total: int = 0
    payment_status: str = "paid"
    customer_details: Optional[CustomerDetails] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def payment_reference(self) -> str:
        return self.payment_intent or self.id

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    def customer_email(self, metadata: CheckoutMetadata) -> Optional[str]:
        if self.customer_details and self.customer_details.email:
            return self.customer_details.email
        return metadata.customer_email

    @classmethod
    def from_event(cls, event: PaymentEvent) -> "CheckoutSession":
        obj = dict(event.data.object)
        if event.type == PAYMENT_SUCCEEDED:
            # A payment intent carries its own id as the payment reference.
            obj.setdefault("payment_intent", obj.get("id"))
            obj.setdefault("amount_total", obj.get("amount_received", obj.get("amount", 0)))
            obj.setdefault("payment_status", "paid")
            obj.setdefault("customer_details", {"email": obj.get("receipt_email")})
        return cls.model_validate(obj)


class ChargeObject(BaseModel):
    """data.object of dispute and refund events."""

    id: str
    payment_intent: Optional[str] = None
    charge: Optional[str] = None
    amount: int = 0
    amount_refunded: int = 0
    reason: Optional[str] = None
    refunds: Optional[dict[str, Any]] = None

    @property
    def refund_reference(self) -> Optional[str]:
        data = (self.refunds or {}).get("data") or []
        if data:
            return data[0].get("id")
        return None

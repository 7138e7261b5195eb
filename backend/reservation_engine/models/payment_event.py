"""
Processed payment-gateway events and reconciliation escalations.

The unique gateway_event_id is what makes webhook handling exactly-once
under at-least-once delivery.
"""

from sqlalchemy import JSON, Boolean, Column, Integer, String

from reservation_engine.db.base import Base, TimestampMixin


class PaymentEventLog(Base, TimestampMixin):
    __tablename__ = "payment_events"

    id = Column(Integer, primary_key=True, index=True)
    gateway_event_id = Column(String(255), nullable=False, unique=True)
    event_type = Column(String(100), nullable=False)
    outcome = Column(String(30), nullable=False, default="processing")
    booking_id = Column(Integer, nullable=True)


class ReconciliationIssueRow(Base, TimestampMixin):
    __tablename__ = "reconciliation_issues"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(50), nullable=False)
    gateway_event_id = Column(String(255), nullable=False, index=True)
    payment_reference = Column(String(255), nullable=True)
    event_id = Column(Integer, nullable=True)
    table_id = Column(Integer, nullable=True)
    customer_email = Column(String(255), nullable=True)
    amount_cents = Column(Integer, nullable=False, default=0)
    details = Column(JSON, nullable=False, default=dict)
    resolved = Column(Boolean, nullable=False, default=False)

"""
Booking model.

Key design decisions:
- Partial unique index on (event_id, table_id) for blocking statuses is the
  last line of defense against two writers racing past the checks
- Cancellation and refund only change status; rows are never deleted
- version column backs compare-and-swap admin edits
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)

from reservation_engine.db.base import Base, TimestampMixin

BLOCKING_STATUS_SQL = "status IN ('confirmed', 'reserved', 'comp', 'modified')"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("venue_tables.id"), nullable=True)
    user_id = Column(Integer, nullable=True, index=True)
    party_size = Column(Integer, nullable=False, default=1)
    seat_numbers = Column(JSON, nullable=False, default=list)
    guest_names = Column(JSON, nullable=False, default=list)
    selections = Column(JSON, nullable=False, default=list)
    customer_email = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False)
    payment_reference = Column(String(255), nullable=True, unique=True)
    checkout_reference = Column(String(255), nullable=True)
    amount_cents = Column(Integer, nullable=False, default=0)
    total_paid_cents = Column(Integer, nullable=False, default=0)
    refund_amount_cents = Column(Integer, nullable=False, default=0)
    refund_reference = Column(String(255), nullable=True)
    lock_token = Column(String(64), nullable=True)
    modified_by = Column(Integer, nullable=True)
    needs_review = Column(Boolean, nullable=False, default=False)
    review_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index(
            "uq_bookings_blocking_table",
            "event_id",
            "table_id",
            unique=True,
            postgresql_where=text(BLOCKING_STATUS_SQL),
        ),
        CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        CheckConstraint("version > 0", name="check_booking_version_positive"),
        CheckConstraint(
            "status IN ('pending', 'reserved', 'comp', 'confirmed', 'modified', 'refunded', 'canceled')",
            name="check_booking_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, event={self.event_id}, table={self.table_id}, status={self.status})>"

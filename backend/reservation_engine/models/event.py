"""
Event model.

available_seats / available_tables are derived counters refreshed by the
availability calculator from bookings; they are never decremented inline
by booking writes.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, String

from reservation_engine.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    event_type = Column(String(20), nullable=False, default="full")  # full, ticket-only
    venue_id = Column(Integer, nullable=True)
    total_seats = Column(Integer, nullable=False, default=0)
    total_tables = Column(Integer, nullable=False, default=0)
    ticket_capacity = Column(Integer, nullable=False, default=0)
    available_seats = Column(Integer, nullable=False, default=0)
    available_tables = Column(Integer, nullable=False, default=0)
    is_private = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("event_type IN ('full', 'ticket-only')", name="check_event_type"),
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("available_tables >= 0", name="check_available_tables_non_negative"),
        Index("ix_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, type={self.event_type})>"

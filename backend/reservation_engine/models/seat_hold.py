"""
Seat hold model: a 20-minute soft lock on a table while the guest pays.
At most one active row per (event_id, table_id).
"""

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text

from reservation_engine.db.base import Base, TimestampMixin


class SeatHold(Base, TimestampMixin):
    __tablename__ = "seat_holds"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    table_id = Column(Integer, ForeignKey("venue_tables.id"), nullable=False)
    seat_numbers = Column(JSON, nullable=False, default=list)
    user_id = Column(Integer, nullable=True)
    session_id = Column(String(128), nullable=False)
    lock_token = Column(String(64), nullable=False, unique=True)
    hold_start_time = Column(DateTime(timezone=True), nullable=False)
    hold_expiry = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default="active")

    __table_args__ = (
        Index(
            "uq_seat_holds_active_table",
            "event_id",
            "table_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
        # Sweep query: active holds past expiry
        Index("ix_seat_holds_status_expiry", "status", "hold_expiry"),
        CheckConstraint("status IN ('active', 'completed', 'expired')", name="check_hold_status"),
        CheckConstraint("hold_expiry > hold_start_time", name="check_hold_expiry_after_start"),
    )

    def __repr__(self) -> str:
        return f"<SeatHold(id={self.id}, event={self.event_id}, table={self.table_id}, status={self.status})>"

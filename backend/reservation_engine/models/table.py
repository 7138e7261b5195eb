"""
Physical venue table. Bookings and holds reference it; the row is also
the lock target that serializes writers competing for the same table.
"""

from sqlalchemy import CheckConstraint, Column, Integer, String, UniqueConstraint

from reservation_engine.db.base import Base


class VenueTable(Base):
    __tablename__ = "venue_tables"

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, nullable=False, index=True)
    table_number = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False, default=4)
    floor = Column(String(50), nullable=False, default="main")

    __table_args__ = (
        UniqueConstraint("venue_id", "table_number", name="uq_venue_table_number"),
        CheckConstraint("capacity > 0", name="check_table_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<VenueTable(id={self.id}, number={self.table_number}, floor={self.floor})>"

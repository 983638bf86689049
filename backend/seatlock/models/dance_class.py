"""
Class model: a recurring class with a fixed student capacity.

Key design decisions:
- `max_capacity` is the only capacity figure stored; occupancy is always
  computed from bookings and seat locks, never denormalized
- `version` is bumped by every seat-lock acquisition; the UPDATE doubles as
  the row lock that serializes concurrent acquisitions for the same class
- Bookable only while `is_active` and not past `end_date`
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, and_, or_

from seatlock.db.base import Base, TimestampMixin, new_id


class DanceClass(Base, TimestampMixin):
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    max_capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("max_capacity >= 0", name="check_class_capacity_non_negative"),
    )

    @classmethod
    def bookable_at(cls, now):
        return and_(
            cls.is_active.is_(True),
            or_(cls.end_date.is_(None), cls.end_date > now),
        )

    def __repr__(self) -> str:
        return f"<DanceClass(id={self.id}, title={self.title}, capacity={self.max_capacity})>"

"""
Booking model: the ledger of purchases against a class or an event.

Key design decisions:
- Exactly one of class_id / event_id is set (CHECK constraint)
- Each CONFIRMED or COMPLETED booking occupies one seat
- Duplicate prevention (one counted booking per user and item) lives in the
  booking service because cancelled rows must not block a re-booking
- `lock_id` remembers the seat lock the purchase was made under
"""

from sqlalchemy import Column, String, ForeignKey, Enum, Index, CheckConstraint

from seatlock.db.base import Base, TimestampMixin, new_id
from seatlock.models.enums import BookingStatus


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    # External user identity; users are owned by the auth service.
    user_id = Column(String(64), nullable=False, index=True)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=True, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=True, index=True)
    lock_id = Column(String(36), ForeignKey("seat_locks.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        Enum(BookingStatus, name="booking_status", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    __table_args__ = (
        CheckConstraint(
            "(class_id IS NULL) <> (event_id IS NULL)",
            name="check_booking_exactly_one_item",
        ),
        Index("ix_bookings_class_status", "class_id", "status"),
        Index("ix_bookings_event_status", "event_id", "status"),
    )

    def __repr__(self) -> str:
        item = f"class={self.class_id}" if self.class_id else f"event={self.event_id}"
        return f"<Booking(id={self.id}, user={self.user_id}, {item}, status={self.status})>"

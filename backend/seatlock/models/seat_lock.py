"""
Seat lock model: a time-boxed hold on part of an item's capacity.

Expiry is lazy. Nothing flips ACTIVE to EXPIRED; a lock simply stops counting
once `expires_at` is in the past. Every query that counts held seats must go
through `SeatLock.active_for` so the status filter and the expiry filter are
always applied together.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Enum, Index, CheckConstraint, and_

from seatlock.db.base import Base, TimestampMixin, new_id
from seatlock.models.enums import ItemType, LockStatus


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SeatLock(Base, TimestampMixin):
    __tablename__ = "seat_locks"

    id = Column(String(36), primary_key=True, default=new_id)
    item_type = Column(
        Enum(ItemType, name="item_type", native_enum=False, create_constraint=True, length=10),
        nullable=False,
    )
    # Loose reference: existence is checked at acquisition time only.
    item_id = Column(String(36), nullable=False)
    user_id = Column(String(64), nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    status = Column(
        Enum(LockStatus, name="lock_status", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=LockStatus.ACTIVE,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    released_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_seat_lock_quantity_positive"),
        # Covers the hot counting query: item + status + expiry range
        Index("ix_seat_locks_item_active", "item_type", "item_id", "status", "expires_at"),
    )

    @classmethod
    def counting_at(cls, now: datetime):
        """Status AND expiry: the only definition of a lock that holds seats."""
        return and_(cls.status == LockStatus.ACTIVE, cls.expires_at > now)

    @classmethod
    def active_for(cls, item_type: ItemType, item_id: str, now: datetime):
        return and_(
            cls.item_type == item_type,
            cls.item_id == item_id,
            cls.counting_at(now),
        )

    def effective_status(self, now: datetime) -> LockStatus:
        """Status as seen by readers: an ACTIVE row past its expiry reads as EXPIRED."""
        if self.status == LockStatus.ACTIVE and as_utc(self.expires_at) <= now:
            return LockStatus.EXPIRED
        return self.status

    def __repr__(self) -> str:
        return (
            f"<SeatLock(id={self.id}, {self.item_type}:{self.item_id}, "
            f"qty={self.quantity}, status={self.status})>"
        )

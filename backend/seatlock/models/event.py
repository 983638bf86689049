"""
Event model with attendee capacity and a publication gate.

Key design decisions:
- Only PUBLISHED events accept seat locks; DRAFT and CANCELLED are invisible
  to the public listing and the availability calculator
- Index on `start_date` for the upcoming-events listing
- `version` plays the same row-claim role as on classes
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, Index, CheckConstraint, and_, or_

from seatlock.db.base import Base, TimestampMixin, new_id
from seatlock.models.enums import EventStatus


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    max_attendees = Column(Integer, nullable=False)
    status = Column(
        Enum(EventStatus, name="event_status", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=EventStatus.DRAFT,
    )
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("max_attendees >= 0", name="check_event_capacity_non_negative"),
        Index("ix_events_start_date", "start_date"),
    )

    @classmethod
    def bookable_at(cls, now):
        return and_(
            cls.status == EventStatus.PUBLISHED,
            or_(cls.end_date.is_(None), cls.end_date > now),
        )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, status={self.status})>"

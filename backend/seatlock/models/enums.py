"""
Status vocabularies shared by models, schemas and services.
"""

import enum


class ItemType(str, enum.Enum):
    CLASS = "CLASS"
    EVENT = "EVENT"


class EventStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class LockStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RELEASED = "RELEASED"
    EXPIRED = "EXPIRED"
    CONSUMED = "CONSUMED"


# Only these booking states occupy a seat.
COUNTED_BOOKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)

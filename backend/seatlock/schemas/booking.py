"""
Pydantic schemas for booking-related request/response validation.
"""

from typing import Optional

from pydantic import Field

from seatlock.models.booking import Booking
from seatlock.models.enums import BookingStatus, ItemType
from seatlock.models.item import ItemRef
from seatlock.schemas.common import CamelModel, UTCDateTime


class BookingCreate(CamelModel):
    item_type: ItemType
    item_id: str = Field(..., min_length=1, max_length=36)
    user_id: str = Field(..., min_length=1, max_length=64)
    lock_id: Optional[str] = Field(None, max_length=36)


class BookingResponse(CamelModel):
    id: str
    user_id: str
    item_type: ItemType
    item_id: str
    lock_id: Optional[str]
    status: BookingStatus
    created_at: UTCDateTime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        ref = ItemRef.of_booking(booking)
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            item_type=ref.item_type,
            item_id=ref.item_id,
            lock_id=booking.lock_id,
            status=booking.status,
            created_at=booking.created_at,
        )


class BookingListResponse(CamelModel):
    bookings: list[BookingResponse]

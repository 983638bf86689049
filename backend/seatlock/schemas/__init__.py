from seatlock.schemas.common import SuccessResponse
from seatlock.schemas.lock import LockAcquireRequest, LockAcquireResponse, LockResponse, LockListResponse
from seatlock.schemas.item import (
    ClassCreate, EventCreate, ClassResponse, EventResponse,
    ClassListResponse, EventListResponse, AvailabilityResponse,
)
from seatlock.schemas.booking import BookingCreate, BookingResponse, BookingListResponse

__all__ = [
    "SuccessResponse",
    "LockAcquireRequest", "LockAcquireResponse", "LockResponse", "LockListResponse",
    "ClassCreate", "EventCreate", "ClassResponse", "EventResponse",
    "ClassListResponse", "EventListResponse", "AvailabilityResponse",
    "BookingCreate", "BookingResponse", "BookingListResponse",
]

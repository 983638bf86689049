from seatlock.models.enums import ItemType, EventStatus, BookingStatus, LockStatus
from seatlock.models.dance_class import DanceClass
from seatlock.models.event import Event
from seatlock.models.seat_lock import SeatLock
from seatlock.models.booking import Booking
from seatlock.models.item import ItemRef

__all__ = [
    "ItemType", "EventStatus", "BookingStatus", "LockStatus",
    "DanceClass", "Event", "SeatLock", "Booking", "ItemRef",
]

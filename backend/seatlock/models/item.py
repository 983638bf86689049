"""
Polymorphic reference to a bookable item.

`ItemRef` is the tagged union CLASS(id) | EVENT(id). Everything that needs to
know which table, which capacity column, which activation gate or which
booking foreign key applies goes through `ItemRef.kind`, so no service ever
branches on the item type string.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from seatlock.models.booking import Booking
from seatlock.models.dance_class import DanceClass
from seatlock.models.enums import ItemType
from seatlock.models.event import Event


@dataclass(frozen=True)
class BookableKind:
    model: type
    capacity: object
    booking_fk: object
    bookable_at: Callable[[datetime], object]
    listing_order: tuple


BOOKABLE_KINDS = {
    ItemType.CLASS: BookableKind(
        model=DanceClass,
        capacity=DanceClass.max_capacity,
        booking_fk=Booking.class_id,
        bookable_at=DanceClass.bookable_at,
        listing_order=(DanceClass.created_at.desc(), DanceClass.id),
    ),
    ItemType.EVENT: BookableKind(
        model=Event,
        capacity=Event.max_attendees,
        booking_fk=Booking.event_id,
        bookable_at=Event.bookable_at,
        listing_order=(Event.start_date.asc(), Event.id),
    ),
}


@dataclass(frozen=True)
class ItemRef:
    item_type: ItemType
    item_id: str

    @property
    def kind(self) -> BookableKind:
        return BOOKABLE_KINDS[self.item_type]

    @classmethod
    def of_booking(cls, booking: Booking) -> "ItemRef":
        if booking.class_id is not None:
            return cls(ItemType.CLASS, booking.class_id)
        return cls(ItemType.EVENT, booking.event_id)

    def booking_fields(self) -> dict:
        return {self.kind.booking_fk.key: self.item_id}

    def __str__(self) -> str:
        return f"{self.item_type.value}:{self.item_id}"

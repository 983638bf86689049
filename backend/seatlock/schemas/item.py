"""
Pydantic schemas for classes, events and their availability figures.
"""

from typing import Optional

from pydantic import Field

from seatlock.models.dance_class import DanceClass
from seatlock.models.enums import EventStatus, ItemType
from seatlock.models.event import Event
from seatlock.schemas.common import CamelModel, UTCDateTime


class ClassCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    max_capacity: int = Field(..., ge=0, le=100000)
    is_active: bool = True
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class EventCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    max_attendees: int = Field(..., ge=0, le=100000)
    status: EventStatus = EventStatus.DRAFT
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None


class ClassStatusUpdate(CamelModel):
    is_active: bool


class EventStatusUpdate(CamelModel):
    status: EventStatus


class CapacityUpdate(CamelModel):
    capacity: int = Field(..., ge=0, le=100000)


class ClassAdminResponse(CamelModel):
    id: str
    title: str
    description: Optional[str]
    max_capacity: int
    is_active: bool
    start_date: Optional[UTCDateTime]
    end_date: Optional[UTCDateTime]
    created_at: UTCDateTime


class EventAdminResponse(CamelModel):
    id: str
    title: str
    description: Optional[str]
    max_attendees: int
    status: EventStatus
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime]
    created_at: UTCDateTime


class ClassResponse(CamelModel):
    id: str
    title: str
    description: Optional[str]
    max_students: int
    current_students: int
    spots_left: int
    start_date: Optional[UTCDateTime]
    end_date: Optional[UTCDateTime]

    @classmethod
    def build(cls, dance_class: DanceClass, reserved: int) -> "ClassResponse":
        return cls(
            id=dance_class.id,
            title=dance_class.title,
            description=dance_class.description,
            max_students=dance_class.max_capacity,
            current_students=reserved,
            spots_left=max(0, dance_class.max_capacity - reserved),
            start_date=dance_class.start_date,
            end_date=dance_class.end_date,
        )


class EventResponse(CamelModel):
    id: str
    title: str
    description: Optional[str]
    max_attendees: int
    current_attendees: int
    spots_left: int
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime]

    @classmethod
    def build(cls, event: Event, reserved: int) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            max_attendees=event.max_attendees,
            current_attendees=reserved,
            spots_left=max(0, event.max_attendees - reserved),
            start_date=event.start_date,
            end_date=event.end_date,
        )


class ClassListResponse(CamelModel):
    classes: list[ClassResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class EventListResponse(CamelModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class AvailabilityResponse(CamelModel):
    item_type: ItemType
    item_id: str
    capacity: int
    reserved: int
    spots_left: int

"""
Class and event service: the capacity source.

Admin operations create items and move their activation gates; public
operations list and show only bookable items, each paired with its current
`reserved` figure from the availability calculator.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.exceptions import InvalidItemError, ItemNotFoundError
from seatlock.core.logging import get_logger
from seatlock.db.transaction import transaction
from seatlock.models.dance_class import DanceClass
from seatlock.models.enums import EventStatus, ItemType
from seatlock.models.event import Event
from seatlock.models.item import BOOKABLE_KINDS, ItemRef
from seatlock.schemas.item import ClassCreate, EventCreate
from seatlock.services.availability import reserved_by_item

logger = get_logger(__name__)


def _check_dates(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    if start_date and end_date and end_date <= start_date:
        raise InvalidItemError("endDate must be after startDate")


async def create_class(db: AsyncSession, data: ClassCreate) -> DanceClass:
    _check_dates(data.start_date, data.end_date)

    async with transaction(db):
        dance_class = DanceClass(
            title=data.title,
            description=data.description,
            max_capacity=data.max_capacity,
            is_active=data.is_active,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        db.add(dance_class)
        await db.flush()

    logger.info("class_created", class_id=dance_class.id, capacity=dance_class.max_capacity)
    return dance_class


async def create_event(db: AsyncSession, data: EventCreate) -> Event:
    if data.start_date <= datetime.now(timezone.utc):
        raise InvalidItemError("Event start date must be in the future")
    _check_dates(data.start_date, data.end_date)

    async with transaction(db):
        event = Event(
            title=data.title,
            description=data.description,
            max_attendees=data.max_attendees,
            status=data.status,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        db.add(event)
        await db.flush()

    logger.info("event_created", event_id=event.id, capacity=event.max_attendees, status=event.status.value)
    return event


async def _get_for_update(db: AsyncSession, ref: ItemRef):
    model = ref.kind.model
    result = await db.execute(select(model).where(model.id == ref.item_id).with_for_update())
    item = result.scalar_one_or_none()
    if item is None:
        raise ItemNotFoundError(ref.item_type.value, ref.item_id)
    return item


async def set_class_active(db: AsyncSession, class_id: str, is_active: bool) -> DanceClass:
    """Existing seat locks and bookings are kept; an inactive class only stops taking new ones."""
    async with transaction(db):
        dance_class = await _get_for_update(db, ItemRef(ItemType.CLASS, class_id))
        dance_class.is_active = is_active
        await db.flush()

    logger.info("class_status_updated", class_id=class_id, is_active=is_active)
    return dance_class


async def set_event_status(db: AsyncSession, event_id: str, status: EventStatus) -> Event:
    async with transaction(db):
        event = await _get_for_update(db, ItemRef(ItemType.EVENT, event_id))
        event.status = status
        await db.flush()

    logger.info("event_status_updated", event_id=event_id, status=status.value)
    return event


async def update_capacity(db: AsyncSession, ref: ItemRef, capacity: int):
    """
    Admin capacity change. Lowering capacity below what is already reserved is
    allowed; availability then reads zero spots until holds lapse.
    """
    if capacity < 0:
        raise InvalidItemError("capacity must be >= 0")

    async with transaction(db):
        item = await _get_for_update(db, ref)
        setattr(item, ref.kind.capacity.key, capacity)
        item.version = item.version + 1
        await db.flush()

    logger.info("capacity_updated", item=str(ref), capacity=capacity)
    return item


async def get_item(db: AsyncSession, ref: ItemRef):
    model = ref.kind.model
    result = await db.execute(select(model).where(model.id == ref.item_id))
    item = result.scalar_one_or_none()
    if item is None:
        raise ItemNotFoundError(ref.item_type.value, ref.item_id)
    return item


async def get_bookable(db: AsyncSession, ref: ItemRef, now: Optional[datetime] = None):
    """
    A bookable item with its reserved count. Items that fail their gate are
    reported as not found: they are simply not offered.
    """
    now = now or datetime.now(timezone.utc)
    kind = ref.kind
    result = await db.execute(
        select(kind.model).where(kind.model.id == ref.item_id, kind.bookable_at(now))
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise ItemNotFoundError(ref.item_type.value, ref.item_id)

    reserved = await reserved_by_item(db, ref.item_type, [item.id], now)
    return item, reserved[item.id]


async def list_bookable(
    db: AsyncSession,
    item_type: ItemType,
    page: int = 1,
    page_size: int = 20,
    now: Optional[datetime] = None,
) -> tuple[list[tuple[object, int]], int]:
    """
    One page of bookable items of a type, each with its reserved count.
    Events are ordered by start date, classes newest first.
    """
    now = now or datetime.now(timezone.utc)
    kind = BOOKABLE_KINDS[item_type]
    model = kind.model
    query = select(model).where(model.bookable_at(now))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query.order_by(*kind.listing_order)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    items = list(result.scalars().all())

    reserved = await reserved_by_item(db, item_type, [item.id for item in items], now)
    return [(item, reserved[item.id]) for item in items], total
